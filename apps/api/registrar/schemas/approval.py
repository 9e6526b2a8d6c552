"""Approval request schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from registrar.schemas.profile import Profile, Role


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalRequest(BaseModel):
    """Audit record of one registration review.

    ``target_role`` is what the requester asked for; ``granted_role`` is set
    only on approval and may differ when an administrator overrides it.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    requester_profile_id: str
    target_role: Role
    status: ApprovalStatus
    submitted_payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by_profile_id: str | None = None
    granted_role: Role | None = None


class ApprovalDecisionRequest(BaseModel):
    decision: ApprovalDecision
    role_override: Role | None = None


class ApprovalOutcome(BaseModel):
    request: ApprovalRequest
    profile: Profile
