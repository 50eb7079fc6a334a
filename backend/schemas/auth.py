from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config import API_TOKEN_MIN_LENGTH
from errors import NO_CHANGES_REQUESTED
from schemas.common import CamelRequest, sanitize_string

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72


def validate_username(username: str) -> str:
    """Trim, lower-case and length-check a username."""
    cleaned = sanitize_string(username, max_length=USERNAME_MAX_LENGTH, lowercase=True)
    if len(cleaned) < USERNAME_MIN_LENGTH:
        raise ValueError(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
    return cleaned


def validate_password_length(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_LENGTH} characters long")
    return password


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        # Only bound the input here; wrong passwords fail in the verifier
        if not v or len(v) > PASSWORD_MAX_LENGTH:
            raise ValueError("Invalid password")
        return v


class SessionResponse(BaseModel):
    username: str
    isValid: bool


class ChangeCredentialsRequest(CamelRequest):
    """Request schema for changing username and/or password."""

    current_password: str
    new_username: Optional[str] = None
    new_password: Optional[str] = None

    @field_validator("new_username")
    @classmethod
    def validate_new_username(cls, v: Optional[str]) -> Optional[str]:
        return validate_username(v) if v is not None else None

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: Optional[str]) -> Optional[str]:
        return validate_password_length(v) if v is not None else None

    @model_validator(mode="after")
    def require_change(self) -> "ChangeCredentialsRequest":
        if self.new_username is None and self.new_password is None:
            raise ValueError(NO_CHANGES_REQUESTED)
        return self


class ChangeCredentialsResponse(BaseModel):
    message: str
    username: str


class SetupRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_length(v)


class SetupStatusResponse(BaseModel):
    isSetupComplete: bool


class VerifyTokenRequest(BaseModel):
    token: str = Field(..., min_length=API_TOKEN_MIN_LENGTH)


class VerifyTokenResponse(BaseModel):
    valid: bool
