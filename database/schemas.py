"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from database.models import PlanStatus


QuestionType = Literal["short-text", "long-text", "number", "date"]
ValidationStatus = Literal["Conforme", "À améliorer", "Non conforme"]


def _not_blank(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} must not be blank")
    return value


# ==========================================
# QUESTION SCHEMAS
# ==========================================

class QuestionBase(BaseModel):
    """Base schema for Question - shared fields"""
    title: str = Field(..., min_length=1, max_length=500, description="Question title")
    type: QuestionType = Field(default="long-text", description="Input type shown to the teacher")
    required: bool = Field(default=True, description="Whether submission requires an answer")
    placeholder: str = Field(default="", description="Help text shown in the empty input")
    ai_rule: str = Field(..., min_length=1, description="Natural-language rule a valid answer must satisfy")
    min_length: int = Field(default=0, ge=0, description="Minimum characters (0 = none)")
    max_length: int = Field(default=0, ge=0, description="Maximum characters (0 = unbounded)")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _not_blank(v, "title")

    @field_validator("ai_rule")
    @classmethod
    def ai_rule_not_blank(cls, v: str) -> str:
        return _not_blank(v, "ai_rule")


class QuestionCreate(QuestionBase):
    """Schema for adding a question; a fresh id is assigned when absent"""
    id: Optional[str] = None


class Question(QuestionBase):
    """Stored question"""
    id: str


# ==========================================
# FORM SCHEMAS
# ==========================================

class FormCreate(BaseModel):
    """Schema for creating an empty Form"""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    session: str = ""
    department: str = ""

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _not_blank(v, "title")


class FormUpdate(BaseModel):
    """Schema for updating Form metadata - all fields optional"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    session: Optional[str] = None
    department: Optional[str] = None


class FormResponse(BaseModel):
    """Form with its ordered questions and the activation shortfall"""
    id: str
    title: str
    description: str
    session: str
    department: str
    questions: List[Question] = []
    is_active: bool
    question_count: int
    questions_needed: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class MoveQuestionRequest(BaseModel):
    direction: Literal[-1, 1]


class MoveQuestionResponse(BaseModel):
    moved: bool
    form: FormResponse


class RuleExample(BaseModel):
    label: str
    rule: str


# ==========================================
# VALIDATION SCHEMAS
# ==========================================

class ValidationResult(BaseModel):
    """Outcome of checking one answer against its question's rule"""
    status: ValidationStatus
    positives: List[str]
    improvements: Optional[List[str]] = None
    suggestion: Optional[str] = None


class PlanValidation(ValidationResult):
    question_id: str


# ==========================================
# PLAN SCHEMAS
# ==========================================

class ResponseItem(BaseModel):
    question_id: str
    question_title: str = ""
    answer: str = ""


class PlanCreate(BaseModel):
    """Schema for starting a plan against the active Form"""
    course_code: str = Field(..., min_length=1, max_length=50)
    course_name: str = ""
    session: Optional[str] = None

    @field_validator("course_code")
    @classmethod
    def course_code_not_blank(cls, v: str) -> str:
        return _not_blank(v, "course_code")


class PlanUpdate(BaseModel):
    """Schema for editing course information - all fields optional"""
    course_code: Optional[str] = Field(None, min_length=1, max_length=50)
    course_name: Optional[str] = None
    session: Optional[str] = None

    @field_validator("course_code")
    @classmethod
    def course_code_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _not_blank(v, "course_code").strip()


class AnswerItem(BaseModel):
    question_id: str
    answer: str = ""


class ResponsesUpdate(BaseModel):
    answers: List[AnswerItem]


class ValidateRequest(BaseModel):
    """Optional answer to record before validating; the saved answer is used otherwise"""
    answer: Optional[str] = None


class ReviewRequest(BaseModel):
    comments: Optional[str] = None


class PlanResponse(BaseModel):
    id: str
    form_id: str
    teacher_id: str
    teacher_name: str
    teacher_email: str
    course_code: str
    course_name: str
    session: str
    status: PlanStatus
    responses: List[ResponseItem] = []
    validations: List[PlanValidation] = []
    pdf_url: Optional[str] = None
    admin_comments: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CompletionStats(BaseModel):
    answered: int
    validated: int
    total: int


class ReadinessResponse(BaseModel):
    stats: CompletionStats
    can_submit: bool
    missing_required: List[str] = []
    unvalidated_question_ids: List[str] = []
    requires_confirmation: bool


class SubmitResponse(BaseModel):
    plan: PlanResponse
    unvalidated_question_ids: List[str] = []


class StatusSummary(BaseModel):
    draft: int = 0
    submitted: int = 0
    approved: int = 0
    revision: int = 0
    total: int = 0
