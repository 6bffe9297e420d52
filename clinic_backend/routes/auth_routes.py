import re

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.database import get_db
from clinic_backend.models.user import User
from clinic_backend.schemas import AuthResponse, UserResponse
from clinic_backend.services import accounts

router = APIRouter(tags=["auth"])

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72
MAX_NAME_LENGTH = 120


def _validate_email(value: str) -> str:
    normalized = accounts.normalize_email(value)
    if not normalized:
        raise ValueError("Email is required.")
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Email address is invalid.")
    return normalized


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Name is required.")
        if len(normalized) > MAX_NAME_LENGTH:
            raise ValueError(f"Name must be {MAX_NAME_LENGTH} characters or fewer.")
        return normalized

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be {MAX_PASSWORD_BYTES} bytes or fewer.")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required.")
        return value


def build_auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=jwt_handler.issue_user_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    user = accounts.register_user(db, data.name, data.email, data.password)
    return build_auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = accounts.authenticate_user(db, data.email, data.password)
    return build_auth_response(user)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
