"""
CRUD operations for the course-plan document store
All database operations go through these functions
"""

import logging

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session
from typing import List, Optional

from database import models, schemas
from workflow import form_schema
from workflow.errors import FormInUseError, NotFoundError

log = logging.getLogger(__name__)


# ==========================================
# USER CRUD
# ==========================================

def create_user(
    db: Session,
    email: str,
    display_name: str,
    hashed_password: str,
    role: models.Role = models.Role.TEACHER,
    department: str = "",
) -> models.User:
    """Create a new user (teacher unless stated otherwise)"""
    db_user = models.User(
        email=email.lower(),
        display_name=display_name,
        hashed_password=hashed_password,
        role=role,
        department=department,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.lower()).first()


def list_users(db: Session, role: Optional[models.Role] = None) -> List[models.User]:
    query = db.query(models.User)
    if role is not None:
        query = query.filter(models.User.role == role)
    return query.order_by(models.User.display_name).all()


def update_user_role(db: Session, user_id: str, role: models.Role) -> models.User:
    db_user = get_user(db, user_id)
    if not db_user:
        raise NotFoundError("User", user_id)
    db_user.role = role
    db.commit()
    db.refresh(db_user)
    return db_user


# ==========================================
# FORM CRUD
# ==========================================

def create_form(db: Session, form: schemas.FormCreate, created_by: Optional[str] = None) -> models.Form:
    """Create a new, inactive form with no questions"""
    db_form = models.Form(
        title=form.title,
        description=form.description,
        session=form.session,
        department=form.department,
        questions=[],
        is_active=False,
        created_by=created_by,
    )
    db.add(db_form)
    db.commit()
    db.refresh(db_form)
    return db_form


def get_form(db: Session, form_id: str, for_update: bool = False) -> models.Form:
    """
    Get form by ID; raises NotFoundError when absent.
    for_update locks the row until commit (question edits and activation).
    """
    query = db.query(models.Form).filter(models.Form.id == form_id)
    if for_update:
        query = query.with_for_update()
    db_form = query.first()
    if not db_form:
        raise NotFoundError("Form", form_id)
    return db_form


def list_forms(db: Session) -> List[models.Form]:
    return db.query(models.Form).order_by(models.Form.created_at.desc()).all()


def get_active_form(db: Session) -> Optional[models.Form]:
    return db.query(models.Form).filter(models.Form.is_active.is_(True)).first()


def update_form(db: Session, form_id: str, form_update: schemas.FormUpdate) -> models.Form:
    """Update form metadata"""
    db_form = get_form(db, form_id)
    update_data = form_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_form, field, value)
    db.commit()
    db.refresh(db_form)
    return db_form


def save_form(db: Session, db_form: models.Form) -> models.Form:
    """Persist changes made to a loaded form (question edits)"""
    db.commit()
    db.refresh(db_form)
    return db_form


def delete_form(db: Session, form_id: str) -> None:
    """
    Delete an inactive form no plan is bound to. The active form must be
    replaced first; plans keep their form for life.
    """
    db_form = get_form(db, form_id, for_update=True)
    if db_form.is_active:
        raise FormInUseError(form_id)
    plan_count = count_plans_for_form(db, form_id)
    if plan_count:
        raise FormInUseError(form_id, plan_count=plan_count)
    db.delete(db_form)
    db.commit()


def activate_form(db: Session, form_id: str) -> models.Form:
    """
    Make form_id the single active form. One UPDATE statement flips every row,
    so no reader ever sees two active forms or none once the commit lands.
    The target row stays locked from the question-count check to the commit;
    question edits take the same lock, so the count cannot change in between.
    """
    db_form = get_form(db, form_id, for_update=True)
    form_schema.check_activation(db_form)
    db.execute(
        update(models.Form)
        .values(is_active=case((models.Form.id == form_id, True), else_=False))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(db_form)
    log.info("Form %s activated", form_id)
    return db_form


# ==========================================
# PLAN CRUD
# ==========================================

def create_plan(db: Session, db_plan: models.Plan) -> models.Plan:
    db.add(db_plan)
    db.commit()
    db.refresh(db_plan)
    return db_plan


def get_plan(db: Session, plan_id: str) -> models.Plan:
    """Get plan by ID; raises NotFoundError when absent"""
    db_plan = db.query(models.Plan).filter(models.Plan.id == plan_id).first()
    if not db_plan:
        raise NotFoundError("Plan", plan_id)
    return db_plan


def list_plans(
    db: Session,
    teacher_id: Optional[str] = None,
    status: Optional[models.PlanStatus] = None,
    session: Optional[str] = None,
) -> List[models.Plan]:
    """Plans matching every given filter, newest first"""
    query = db.query(models.Plan)
    if teacher_id:
        query = query.filter(models.Plan.teacher_id == teacher_id)
    if status is not None:
        query = query.filter(models.Plan.status == status)
    if session:
        query = query.filter(models.Plan.session == session)
    return query.order_by(models.Plan.created_at.desc()).all()


def count_plans_for_form(db: Session, form_id: str) -> int:
    return db.query(func.count(models.Plan.id)).filter(models.Plan.form_id == form_id).scalar() or 0


def save_plan(db: Session, db_plan: models.Plan) -> models.Plan:
    """Persist changes made to a loaded plan"""
    db.commit()
    db.refresh(db_plan)
    return db_plan


def delete_plan(db: Session, db_plan: models.Plan) -> None:
    db.delete(db_plan)
    db.commit()
