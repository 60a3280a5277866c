"""
Plan lifecycle state machine.

    draft ──submit──▶ submitted ──approve──────────▶ approved (terminal)
                        │   ▲
        request-revision│   │submit
                        ▼   │
                       revision

Teachers own their plans while in draft/revision (answers, course info,
submission). Once submitted only an administrator acts on the plan, and only
on its status and comments. Every mutation below checks the actor's role and
the current status before touching the plan, so a refused call leaves the
plan unchanged.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from database.models import PlanStatus, Role
from database.schemas import AnswerItem, ValidationResult
from workflow import form_schema
from workflow.errors import (
    IncompleteSubmissionError,
    InvalidTransitionError,
    MissingCommentError,
    PermissionDeniedError,
    UnknownQuestionError,
)
from workflow.readiness import missing_required

log = logging.getLogger(__name__)


class PlanEvent(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REQUEST_REVISION = "request-revision"


class PlanAction(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SUBMIT = "submit"
    APPROVE = "approve"
    REQUEST_REVISION = "request-revision"


TRANSITIONS: Dict[tuple, PlanStatus] = {
    (PlanStatus.DRAFT, PlanEvent.SUBMIT): PlanStatus.SUBMITTED,
    (PlanStatus.REVISION, PlanEvent.SUBMIT): PlanStatus.SUBMITTED,
    (PlanStatus.SUBMITTED, PlanEvent.APPROVE): PlanStatus.APPROVED,
    (PlanStatus.SUBMITTED, PlanEvent.REQUEST_REVISION): PlanStatus.REVISION,
}

EDITABLE_STATUSES = frozenset({PlanStatus.DRAFT, PlanStatus.REVISION})
DELETABLE_STATUSES = frozenset({PlanStatus.DRAFT})

# Teachers act only on plans they own; administrators on any plan.
ROLE_ACTIONS: Dict[Role, frozenset] = {
    Role.TEACHER: frozenset({PlanAction.VIEW, PlanAction.EDIT, PlanAction.DELETE, PlanAction.SUBMIT}),
    Role.ADMIN: frozenset({PlanAction.VIEW, PlanAction.APPROVE, PlanAction.REQUEST_REVISION}),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def current_status(plan) -> PlanStatus:
    return PlanStatus(plan.status)


def next_status(current: PlanStatus, event: PlanEvent) -> PlanStatus:
    try:
        return TRANSITIONS[(PlanStatus(current), PlanEvent(event))]
    except KeyError:
        raise InvalidTransitionError(PlanStatus(current).value, PlanEvent(event).value)


def authorize(actor, plan, action: PlanAction) -> None:
    """Raise PermissionDeniedError unless actor may perform action on plan."""
    role = Role(actor.role)
    if role is Role.TEACHER:
        if plan.teacher_id != actor.id:
            raise PermissionDeniedError("Only the plan's owner can access it")
    elif role is Role.ADMIN:
        pass
    else:
        raise PermissionDeniedError(f"Unsupported role '{role}'")
    if action not in ROLE_ACTIONS[role]:
        raise PermissionDeniedError(f"Role '{role.value}' cannot {action.value} a plan")


def is_editable(plan) -> bool:
    return current_status(plan) in EDITABLE_STATUSES


def ensure_editable(plan) -> None:
    if not is_editable(plan):
        raise InvalidTransitionError(current_status(plan).value, PlanAction.EDIT.value)


def ensure_deletable(actor, plan) -> None:
    authorize(actor, plan, PlanAction.DELETE)
    if current_status(plan) not in DELETABLE_STATUSES:
        raise InvalidTransitionError(current_status(plan).value, PlanAction.DELETE.value)


# ─── Teacher edits ─────────────────────────────────────────────────────────────

def initial_responses(form) -> List[dict]:
    """One empty response per form question, in form order."""
    return [
        {"question_id": q["id"], "question_title": q.get("title", ""), "answer": ""}
        for q in form.questions or []
    ]


def update_course_info(actor, plan, changes: dict) -> None:
    authorize(actor, plan, PlanAction.EDIT)
    ensure_editable(plan)
    for field, value in changes.items():
        setattr(plan, field, value)


def record_responses(actor, plan, form, answers: Iterable[AnswerItem]) -> List[str]:
    """
    Save answers in form question order. Questions absent from answers keep
    their saved answer. A changed answer drops that question's validation.

    Returns the ids whose answer changed.
    """
    authorize(actor, plan, PlanAction.EDIT)
    ensure_editable(plan)

    incoming = {item.question_id: item.answer for item in answers}
    unknown = [qid for qid in incoming if form_schema.find_question(form, qid) is None]
    if unknown:
        raise UnknownQuestionError(unknown)

    previous = {r["question_id"]: r for r in plan.responses or []}
    form_ids = set()
    responses = []
    changed = []
    for q in form.questions or []:
        qid = q["id"]
        form_ids.add(qid)
        old_answer = previous.get(qid, {}).get("answer", "")
        if qid in incoming:
            answer = form_schema.coerce_answer(q, incoming[qid])
        else:
            answer = old_answer
        if answer != old_answer:
            changed.append(qid)
        responses.append({"question_id": qid, "question_title": q.get("title", ""), "answer": answer})

    # Responses to questions since removed from the form are kept as saved
    responses.extend(r for qid, r in previous.items() if qid not in form_ids)

    plan.responses = responses
    if changed:
        changed_set = set(changed)
        plan.validations = [v for v in plan.validations or [] if v.get("question_id") not in changed_set]
    return changed


def saved_answer(plan, question_id: str) -> str:
    for r in plan.responses or []:
        if r.get("question_id") == question_id:
            return r.get("answer", "")
    return ""


def record_validation(actor, plan, question_id: str, result: ValidationResult) -> dict:
    """Store result as the single validation of question_id."""
    authorize(actor, plan, PlanAction.EDIT)
    ensure_editable(plan)
    entry = {"question_id": question_id, **result.model_dump()}
    validations = [v for v in plan.validations or [] if v.get("question_id") != question_id]
    validations.append(entry)
    plan.validations = validations
    return entry


# ─── Transitions ───────────────────────────────────────────────────────────────

def submit(actor, plan, form, export: Callable, now: Optional[datetime] = None) -> None:
    """
    Move a draft or revision plan to submitted.

    export(plan, form) renders and stores the PDF and returns its URL; if it
    raises, the plan keeps its pre-submit state.
    """
    authorize(actor, plan, PlanAction.SUBMIT)
    target = next_status(current_status(plan), PlanEvent.SUBMIT)

    missing = missing_required(form, plan.responses)
    if missing:
        raise IncompleteSubmissionError(missing)

    pdf_url = export(plan, form)

    plan.pdf_url = pdf_url
    plan.submitted_at = now or _now()
    plan.status = target
    log.info("Plan %s submitted (%s)", plan.id, pdf_url)


def approve(actor, plan, comments: Optional[str] = None, now: Optional[datetime] = None) -> None:
    """Approve a submitted plan; existing comments stay unless new ones are given."""
    authorize(actor, plan, PlanAction.APPROVE)
    target = next_status(current_status(plan), PlanEvent.APPROVE)
    if comments and comments.strip():
        plan.admin_comments = comments
    plan.reviewed_at = now or _now()
    plan.status = target
    log.info("Plan %s approved", plan.id)


def request_revision(actor, plan, comments: Optional[str], now: Optional[datetime] = None) -> None:
    """Send a submitted plan back to its teacher with mandatory comments."""
    authorize(actor, plan, PlanAction.REQUEST_REVISION)
    target = next_status(current_status(plan), PlanEvent.REQUEST_REVISION)
    if not comments or not comments.strip():
        raise MissingCommentError()
    plan.admin_comments = comments
    plan.reviewed_at = now or _now()
    plan.status = target
    log.info("Plan %s returned for revision", plan.id)
