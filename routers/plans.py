"""
Plan API endpoints
Teachers fill in, validate and submit their course plans; administrators
review submitted plans (approve or send back for revision).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import get_current_user, require_admin, require_teacher
from database import crud, schemas
from database.database import get_db
from database.models import Plan, PlanStatus, User
from workflow import form_schema, pdf_exporter, plan_state, readiness
from workflow.errors import NotFoundError
from workflow.validator import validate_answer

router = APIRouter(prefix="/plans", tags=["plans"])


def _load_plan(db: Session, plan_id: str, user: User, action: plan_state.PlanAction) -> Plan:
    plan = crud.get_plan(db, plan_id)
    plan_state.authorize(user, plan, action)
    return plan


# ─── Teacher ───────────────────────────────────────────────────────────────────

@router.post("/", response_model=schemas.PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    body: schemas.PlanCreate,
    teacher: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Start a draft plan bound to the active form"""
    form = crud.get_active_form(db)
    if not form:
        raise NotFoundError("Active form")

    plan = Plan(
        form_id=form.id,
        teacher_id=teacher.id,
        teacher_name=teacher.display_name,
        teacher_email=teacher.email,
        course_code=body.course_code.strip(),
        course_name=body.course_name,
        session=body.session if body.session is not None else form.session,
        status=PlanStatus.DRAFT,
        responses=plan_state.initial_responses(form),
        validations=[],
    )
    return crud.create_plan(db, plan)


@router.get("/mine", response_model=List[schemas.PlanResponse])
def my_plans(teacher: User = Depends(require_teacher), db: Session = Depends(get_db)):
    return crud.list_plans(db, teacher_id=teacher.id)


@router.get("/mine/summary", response_model=schemas.StatusSummary)
def my_summary(teacher: User = Depends(require_teacher), db: Session = Depends(get_db)):
    """Plan counts per status for the teacher dashboard"""
    return readiness.status_summary(crud.list_plans(db, teacher_id=teacher.id))


@router.patch("/{plan_id}", response_model=schemas.PlanResponse)
def update_plan(
    plan_id: str,
    body: schemas.PlanUpdate,
    teacher: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Edit course information of a draft or revision plan"""
    plan = crud.get_plan(db, plan_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    plan_state.update_course_info(teacher, plan, changes)
    return crud.save_plan(db, plan)


@router.put("/{plan_id}/responses", response_model=schemas.PlanResponse)
def save_responses(
    plan_id: str,
    body: schemas.ResponsesUpdate,
    teacher: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Save answers; a changed answer loses its validation"""
    plan = crud.get_plan(db, plan_id)
    form = crud.get_form(db, plan.form_id)
    plan_state.record_responses(teacher, plan, form, body.answers)
    return crud.save_plan(db, plan)


@router.post("/{plan_id}/questions/{question_id}/validate", response_model=schemas.PlanValidation)
async def validate_question(
    plan_id: str,
    question_id: str,
    body: Optional[schemas.ValidateRequest] = None,
    teacher: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """
    Check one answer against its question's rule and store the result.
    When body.answer is given it is saved first; otherwise the saved answer is checked.
    """
    plan = _load_plan(db, plan_id, teacher, plan_state.PlanAction.EDIT)
    plan_state.ensure_editable(plan)
    form = crud.get_form(db, plan.form_id)
    question = form_schema.find_question(form, question_id)
    if question is None:
        raise NotFoundError("Question", question_id)

    if body is not None and body.answer is not None:
        plan_state.record_responses(
            teacher, plan, form, [schemas.AnswerItem(question_id=question_id, answer=body.answer)]
        )

    answer = plan_state.saved_answer(plan, question_id)
    if not readiness.is_answered(answer):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Answer is empty; nothing to validate")

    result = await validate_answer(question, answer)
    entry = plan_state.record_validation(teacher, plan, question_id, result)
    crud.save_plan(db, plan)
    return entry


@router.get("/{plan_id}/readiness", response_model=schemas.ReadinessResponse)
def plan_readiness(plan_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    plan = _load_plan(db, plan_id, user, plan_state.PlanAction.VIEW)
    form = crud.get_form(db, plan.form_id)
    return readiness.readiness(form, plan.responses, plan.validations)


@router.post("/{plan_id}/submit", response_model=schemas.SubmitResponse)
def submit_plan(plan_id: str, teacher: User = Depends(require_teacher), db: Session = Depends(get_db)):
    """
    Submit a draft or revision plan: every required question must be answered.
    Unvalidated questions do not block submission; their ids are returned.
    """
    plan = crud.get_plan(db, plan_id)
    form = crud.get_form(db, plan.form_id)
    plan_state.submit(teacher, plan, form, pdf_exporter.export_plan)
    plan = crud.save_plan(db, plan)
    return schemas.SubmitResponse(
        plan=schemas.PlanResponse.model_validate(plan),
        unvalidated_question_ids=readiness.unvalidated_question_ids(form, plan.validations),
    )


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(plan_id: str, teacher: User = Depends(require_teacher), db: Session = Depends(get_db)):
    """Delete a draft plan"""
    plan = crud.get_plan(db, plan_id)
    plan_state.ensure_deletable(teacher, plan)
    crud.delete_plan(db, plan)


# ─── Admin ─────────────────────────────────────────────────────────────────────

@router.get("/", response_model=List[schemas.PlanResponse])
def list_plans(
    teacher_id: Optional[str] = None,
    plan_status: Optional[PlanStatus] = Query(None, alias="status"),
    session: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All plans, newest first, filtered by teacher, status and session"""
    return crud.list_plans(db, teacher_id=teacher_id, status=plan_status, session=session)


@router.post("/{plan_id}/approve", response_model=schemas.PlanResponse)
def approve_plan(
    plan_id: str,
    body: Optional[schemas.ReviewRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    plan = crud.get_plan(db, plan_id)
    plan_state.approve(admin, plan, body.comments if body else None)
    return crud.save_plan(db, plan)


@router.post("/{plan_id}/request-revision", response_model=schemas.PlanResponse)
def request_revision(
    plan_id: str,
    body: schemas.ReviewRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Send the plan back to its teacher; comments are mandatory"""
    plan = crud.get_plan(db, plan_id)
    plan_state.request_revision(admin, plan, body.comments)
    return crud.save_plan(db, plan)


# ─── Shared ────────────────────────────────────────────────────────────────────

@router.get("/{plan_id}", response_model=schemas.PlanResponse)
def get_plan(plan_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Owner teacher or any administrator"""
    return _load_plan(db, plan_id, user, plan_state.PlanAction.VIEW)
