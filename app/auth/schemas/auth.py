from pydantic import BaseModel, EmailStr, Field

from app.auth.models.user import Role
from app.auth.schemas.user import MeResponse
from app.core.constants import PASSWORD_MIN_LENGTH


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255)
    university: str = Field(..., min_length=2, max_length=255)
    role: Role = Role.STUDENT


class LoginRequest(BaseModel):
    """Login request schema"""

    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Tokens travel in httpOnly cookies; the body only carries the user."""

    user: MeResponse


class RefreshResponse(BaseModel):
    message: str = "Session refreshed"


class LogoutResponse(BaseModel):
    message: str = "Signed out"
