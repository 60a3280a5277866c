"""
Error taxonomy of the review workflow.

Every error carries an HTTP status and a stable code so the API layer can
return it as a recoverable result. ValidationTransportError never leaves the
validator: it is always absorbed into the deterministic fallback.
"""

from typing import List, Optional


class WorkflowError(Exception):
    status_code = 400
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extra(self) -> dict:
        return {}


class ActivationError(WorkflowError):
    status_code = 409
    code = "FORM_ACTIVATION_REFUSED"

    def __init__(self, question_count: int, minimum: int):
        self.question_count = question_count
        self.shortfall = max(0, minimum - question_count)
        super().__init__(
            f"Form needs at least {minimum} questions to be activated "
            f"({self.shortfall} missing)"
        )

    def extra(self) -> dict:
        return {"question_count": self.question_count, "shortfall": self.shortfall}


class IncompleteSubmissionError(WorkflowError):
    status_code = 422
    code = "PLAN_INCOMPLETE"

    def __init__(self, missing_question_ids: List[str]):
        self.missing_question_ids = list(missing_question_ids)
        super().__init__(
            f"{len(self.missing_question_ids)} required question(s) unanswered: "
            + ", ".join(self.missing_question_ids)
        )

    def extra(self) -> dict:
        return {"missing_question_ids": self.missing_question_ids}


class MissingCommentError(WorkflowError):
    status_code = 422
    code = "REVIEW_COMMENT_REQUIRED"

    def __init__(self):
        super().__init__("A comment is required to request a revision")


class InvalidTransitionError(WorkflowError):
    status_code = 409
    code = "PLAN_INVALID_TRANSITION"

    def __init__(self, current: str, event: str):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event} a plan in status '{current}'")

    def extra(self) -> dict:
        return {"current_status": self.current, "event": self.event}


class PermissionDeniedError(WorkflowError):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundError(WorkflowError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: Optional[str] = None):
        self.kind = kind
        self.identifier = identifier
        if identifier:
            super().__init__(f"{kind} '{identifier}' not found")
        else:
            super().__init__(f"{kind} not found")


class QuestionRemovalError(ActivationError):
    code = "ACTIVE_FORM_MINIMUM"

    def __init__(self, question_count: int, minimum: int):
        super().__init__(question_count, minimum)
        self.message = (
            f"The active form must keep at least {minimum} questions; "
            f"it has {question_count + 1}, so none can be removed"
        )
        self.args = (self.message,)


class FormInUseError(WorkflowError):
    status_code = 409
    code = "FORM_ACTIVE"

    def __init__(self, form_id: str, plan_count: int = 0):
        self.plan_count = plan_count
        if plan_count:
            self.code = "FORM_HAS_PLANS"
            super().__init__(f"Form '{form_id}' is used by {plan_count} plan(s) and cannot be deleted")
        else:
            super().__init__(f"Form '{form_id}' is active and cannot be deleted")

    def extra(self) -> dict:
        return {"plan_count": self.plan_count} if self.plan_count else {}


class UnknownQuestionError(WorkflowError):
    status_code = 422
    code = "QUESTION_NOT_IN_FORM"

    def __init__(self, question_ids: List[str]):
        self.question_ids = list(question_ids)
        super().__init__("Questions not part of the plan's form: " + ", ".join(self.question_ids))

    def extra(self) -> dict:
        return {"question_ids": self.question_ids}


class InvalidAnswerError(WorkflowError):
    status_code = 422
    code = "ANSWER_INVALID"

    def __init__(self, question_id: str, reason: str):
        self.question_id = question_id
        super().__init__(f"Invalid answer for question '{question_id}': {reason}")

    def extra(self) -> dict:
        return {"question_id": self.question_id}


class ExportError(WorkflowError):
    status_code = 502
    code = "PLAN_EXPORT_FAILED"


class ValidationTransportError(Exception):
    """Remote validation failed (HTTP, timeout, missing or malformed JSON)."""
