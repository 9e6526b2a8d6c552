"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from registrar.schemas.access import Decision
from registrar.schemas.profile import ProfileStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class AccessDeniedDetails(BaseModel):
    decision: Decision
    redirect_to: str


class AccessDeniedErrorBody(BaseModel):
    code: Literal["UNAUTHENTICATED", "APPROVAL_PENDING", "FORBIDDEN"]
    message: str
    details: AccessDeniedDetails


class StatusTransitionErrorDetails(BaseModel):
    current_status: ProfileStatus
    attempted_status: ProfileStatus
    allowed_next_statuses: list[ProfileStatus] | None = None


class StatusTransitionError(BaseModel):
    code: Literal["STATUS_TRANSITION_INVALID"]
    message: str
    details: StatusTransitionErrorDetails
