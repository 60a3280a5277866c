"""
Form API endpoints
Questionnaire authoring and activation (administrators); the active form is
readable by every signed-in user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from auth.dependencies import get_current_user, require_admin
from database import crud, schemas
from database.database import get_db
from database.models import Form, User
from workflow import form_schema
from workflow.errors import NotFoundError

router = APIRouter(prefix="/forms", tags=["forms"])


def _form_out(form: Form) -> schemas.FormResponse:
    return schemas.FormResponse(
        id=form.id,
        title=form.title,
        description=form.description,
        session=form.session,
        department=form.department,
        questions=form.questions or [],
        is_active=form.is_active,
        question_count=form_schema.question_count(form),
        questions_needed=form_schema.questions_needed(form),
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


@router.post("/", response_model=schemas.FormResponse, status_code=status.HTTP_201_CREATED)
def create_form(
    form: schemas.FormCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create an empty, inactive form"""
    return _form_out(crud.create_form(db, form, created_by=admin.id))


@router.get("/", response_model=List[schemas.FormResponse])
def list_forms(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [_form_out(f) for f in crud.list_forms(db)]


@router.get("/rule-examples", response_model=List[schemas.RuleExample])
def rule_examples(admin: User = Depends(require_admin)):
    """Predefined validation rules offered while writing a question"""
    return form_schema.RULE_EXAMPLES


@router.get("/active", response_model=schemas.FormResponse)
def get_active_form(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The form new plans are bound to"""
    form = crud.get_active_form(db)
    if not form:
        raise NotFoundError("Active form")
    return _form_out(form)


@router.get("/{form_id}", response_model=schemas.FormResponse)
def get_form(form_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return _form_out(crud.get_form(db, form_id))


@router.put("/{form_id}", response_model=schemas.FormResponse)
def update_form(
    form_id: str,
    form_update: schemas.FormUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Update form metadata (title, description, session, department)"""
    return _form_out(crud.update_form(db, form_id, form_update))


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_form(form_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Delete an inactive form"""
    crud.delete_form(db, form_id)


# ─── Questions ─────────────────────────────────────────────────────────────────

@router.post("/{form_id}/questions", response_model=schemas.FormResponse, status_code=status.HTTP_201_CREATED)
def add_question(
    form_id: str,
    question: schemas.QuestionCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    form = crud.get_form(db, form_id, for_update=True)
    form_schema.add_question(form, question)
    return _form_out(crud.save_form(db, form))


@router.put("/{form_id}/questions/{index}", response_model=schemas.FormResponse)
def update_question(
    form_id: str,
    index: int,
    question: schemas.QuestionBase,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    form = crud.get_form(db, form_id, for_update=True)
    form_schema.update_question(form, index, question)
    return _form_out(crud.save_form(db, form))


@router.delete("/{form_id}/questions/{index}", response_model=schemas.FormResponse)
def remove_question(
    form_id: str,
    index: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    form = crud.get_form(db, form_id, for_update=True)
    form_schema.remove_question(form, index)
    return _form_out(crud.save_form(db, form))


@router.post("/{form_id}/questions/{index}/move", response_model=schemas.MoveQuestionResponse)
def move_question(
    form_id: str,
    index: int,
    body: schemas.MoveQuestionRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Swap with the neighbouring question; moved=False at either end of the list"""
    form = crud.get_form(db, form_id, for_update=True)
    moved = form_schema.reorder_question(form, index, body.direction)
    if moved:
        form = crud.save_form(db, form)
    return schemas.MoveQuestionResponse(moved=moved, form=_form_out(form))


@router.post("/{form_id}/activate", response_model=schemas.FormResponse)
def activate_form(form_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Make this form the only active one (needs at least 10 questions)"""
    form = crud.activate_form(db, form_id)
    return _form_out(form)
