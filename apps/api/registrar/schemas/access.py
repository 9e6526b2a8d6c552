"""Route access schemas."""

from enum import Enum

from pydantic import BaseModel


class RouteRequirement(str, Enum):
    NONE = "none"
    AUTHENTICATED = "authenticated"
    REQUIRE_STAFF = "require_staff"
    REQUIRE_ADMIN = "require_admin"


class Decision(str, Enum):
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_PENDING = "redirect_to_pending"
    REDIRECT_TO_UNAUTHORIZED = "redirect_to_unauthorized"


class AccessDecisionResponse(BaseModel):
    path: str
    requirement: RouteRequirement
    decision: Decision
    redirect_to: str | None = None
