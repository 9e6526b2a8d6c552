"""Authentication and session schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from registrar.schemas.approval import ApprovalRequest
from registrar.schemas.profile import Profile, Role


class AuthPrincipal(BaseModel):
    """Normalized identity-provider principal, independent of any profile."""

    user_id: str = Field(min_length=1)
    email: str | None = None


class Session(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_in: int = 3600
    principal: AuthPrincipal


class SessionChangeKind(str, Enum):
    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


class SessionChange(BaseModel):
    kind: SessionChangeKind
    session: Session | None = None


class SessionSnapshot(BaseModel):
    principal: AuthPrincipal | None = None
    profile: Profile | None = None
    is_loading: bool
    is_admin: bool = False
    is_staff: bool = False
    is_student: bool = False


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role
    form_data: dict[str, Any] = Field(default_factory=dict)


class RegistrationResult(BaseModel):
    principal: AuthPrincipal
    profile: Profile
    approval_request: ApprovalRequest


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int
    session: SessionSnapshot
