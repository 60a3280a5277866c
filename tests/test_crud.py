import pytest

from database import crud, models, schemas
from workflow import form_schema
from workflow.errors import ActivationError, FormInUseError


def _form_with_questions(db, count, title="Plan de cours"):
    form = crud.create_form(db, schemas.FormCreate(title=title))
    form = crud.get_form(db, form.id, for_update=True)
    for i in range(count):
        form_schema.add_question(form, schemas.QuestionCreate(title=f"Q{i}", ai_rule="Règle"))
    return crud.save_form(db, form)


def test_get_form_for_update_returns_the_form(db):
    form = _form_with_questions(db, 2)
    locked = crud.get_form(db, form.id, for_update=True)
    assert locked.id == form.id
    assert form_schema.question_count(locked) == 2


def test_failed_activation_keeps_previous_active_form(db):
    current = _form_with_questions(db, 10, title="Actuel")
    crud.activate_form(db, current.id)
    short = _form_with_questions(db, 9, title="Incomplet")

    with pytest.raises(ActivationError):
        crud.activate_form(db, short.id)
    db.rollback()

    assert crud.get_active_form(db).id == current.id
    assert crud.get_form(db, short.id).is_active is False


def test_delete_form_refuses_bound_plans(db):
    form = _form_with_questions(db, 10)
    crud.create_plan(db, models.Plan(form_id=form.id, teacher_id="t1", course_code="INF101"))

    assert crud.count_plans_for_form(db, form.id) == 1
    with pytest.raises(FormInUseError) as exc_info:
        crud.delete_form(db, form.id)
    db.rollback()

    assert exc_info.value.plan_count == 1
    assert exc_info.value.code == "FORM_HAS_PLANS"
    assert crud.get_form(db, form.id).id == form.id
