"""
Readiness & aggregation: completion statistics and the submission gate.

Only required answers block submission. Validation coverage is advisory: the
API reports unvalidated questions so the client can ask for confirmation.
"""

from typing import Dict, Iterable, List

from database.models import PlanStatus
from database.schemas import CompletionStats, ReadinessResponse, StatusSummary


def is_answered(answer) -> bool:
    return bool(answer and str(answer).strip())


def answers_by_question(responses: Iterable[dict]) -> Dict[str, str]:
    return {r.get("question_id"): r.get("answer", "") for r in responses or []}


def completion_stats(form, responses: List[dict], validations: List[dict]) -> CompletionStats:
    """answered/validated count only questions of the form; total is its question count."""
    answers = answers_by_question(responses)
    question_ids = [q["id"] for q in form.questions or []]
    validated = {v.get("question_id") for v in validations or []}
    return CompletionStats(
        answered=sum(1 for qid in question_ids if is_answered(answers.get(qid))),
        validated=sum(1 for qid in question_ids if qid in validated),
        total=len(question_ids),
    )


def missing_required(form, responses: List[dict]) -> List[str]:
    """Ids of required questions without a non-blank answer, in form order."""
    answers = answers_by_question(responses)
    return [
        q["id"] for q in form.questions or []
        if q.get("required") and not is_answered(answers.get(q["id"]))
    ]


def unvalidated_question_ids(form, validations: List[dict]) -> List[str]:
    validated = {v.get("question_id") for v in validations or []}
    return [q["id"] for q in form.questions or [] if q["id"] not in validated]


def can_submit(stats: CompletionStats) -> bool:
    return stats.answered == stats.total


def readiness(form, responses: List[dict], validations: List[dict]) -> ReadinessResponse:
    stats = completion_stats(form, responses, validations)
    return ReadinessResponse(
        stats=stats,
        can_submit=can_submit(stats),
        missing_required=missing_required(form, responses),
        unvalidated_question_ids=unvalidated_question_ids(form, validations),
        requires_confirmation=stats.validated < stats.total,
    )


def status_summary(plans: Iterable) -> StatusSummary:
    counts = {status.value: 0 for status in PlanStatus}
    for plan in plans:
        counts[PlanStatus(plan.status).value] += 1
    return StatusSummary(**counts, total=sum(counts.values()))
