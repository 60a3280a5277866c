"""
SQLAlchemy models for the course-plan document store
Users, Forms (questionnaires) and Plans (a teacher's answers to one Form)

Questions, responses and validations are ordered nested documents and are
kept as JSON columns so a Form or a Plan round-trips as a single record.
"""

from datetime import datetime, timezone
import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Text, JSON, Enum as SQLEnum

from database.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    """Capability tag attached to every signed-in identity."""
    TEACHER = "teacher"
    ADMIN = "admin"


class PlanStatus(str, enum.Enum):
    """Lifecycle states of a course plan"""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REVISION = "revision"


# ==========================================
# AUTH: USERS
# ==========================================

class User(Base):
    """
    Signed-in identity (teacher or administrator).
    Newly registered identities are teachers; an admin promotes them.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(Role, values_callable=lambda x: [e.value for e in x]),
        nullable=False, default=Role.TEACHER, index=True,
    )
    department = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}', role='{self.role}')>"


# ==========================================
# FORMS
# ==========================================

class Form(Base):
    """
    Questionnaire authored by administrators.
    questions: ordered list of question dicts (display and PDF order).
    At most one row has is_active = True.
    """
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    session = Column(String(100), nullable=False, default="")
    department = Column(String(255), nullable=False, default="")
    questions = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Form(id='{self.id}', title='{self.title}', is_active={self.is_active})>"


# ==========================================
# PLANS
# ==========================================

class Plan(Base):
    """
    A teacher's course plan bound to exactly one Form (form_id never changes).
    responses: [{question_id, question_title, answer}] in Form question order.
    validations: [{question_id, status, positives, improvements, suggestion}].
    """
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=_new_id)
    form_id = Column(String(36), nullable=False, index=True)
    teacher_id = Column(String(36), nullable=False, index=True)
    teacher_name = Column(String(255), nullable=False, default="")
    teacher_email = Column(String(255), nullable=False, default="")
    course_code = Column(String(50), nullable=False)
    course_name = Column(String(255), nullable=False, default="")
    session = Column(String(100), nullable=False, default="", index=True)
    status = Column(
        SQLEnum(PlanStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False, default=PlanStatus.DRAFT, index=True,
    )
    responses = Column(JSON, default=list, nullable=False)
    validations = Column(JSON, default=list, nullable=False)
    pdf_url = Column(String(1024), nullable=True)
    admin_comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Plan(id='{self.id}', course_code='{self.course_code}', status='{self.status}')>"
