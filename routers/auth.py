"""
Authentication router.
Self sign-up (always as teacher), login, profile, and admin role management.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.orm import Session

from auth.dependencies import get_current_user, require_admin
from auth.security import create_access_token, hash_password, verify_password
from database import crud
from database.database import get_db
from database.models import Role, User

router = APIRouter(prefix="/auth", tags=["auth"])


# ─── Schemas ───────────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=4)
    display_name: str = Field(..., min_length=1, max_length=255)
    department: str = ""

class LoginRequest(BaseModel):
    email: str
    password: str

class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    role: Role
    department: str

    model_config = ConfigDict(from_attributes=True)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class RoleUpdate(BaseModel):
    role: Role


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id, Role(user.role).value),
        user=UserResponse.model_validate(user),
    )


# ─── Routes ────────────────────────────────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Create a teacher account and sign it in."""
    if crud.get_user_by_email(db, request.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = crud.create_user(
        db,
        email=request.email,
        display_name=request.display_name.strip(),
        hashed_password=hash_password(request.password),
        role=Role.TEACHER,
        department=request.department,
    )
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a bearer token."""
    user = crud.get_user_by_email(db, request.email)
    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/teachers", response_model=List[UserResponse])
def list_teachers(
    department: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Teachers, for the review dashboard's teacher filter."""
    teachers = crud.list_users(db, role=Role.TEACHER)
    if department:
        teachers = [t for t in teachers if t.department == department]
    return teachers


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_role(
    user_id: str,
    body: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Promote or demote a user. Administrators cannot demote themselves."""
    if user_id == admin.id and body.role is not Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove your own admin role")
    return crud.update_user_role(db, user_id, body.role)
