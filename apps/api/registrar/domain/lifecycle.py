"""Profile and approval-request lifecycle transition rules."""

from registrar.errors import ApiError
from registrar.schemas.approval import ApprovalStatus
from registrar.schemas.profile import ProfileStatus

_PROFILE_TRANSITIONS: dict[ProfileStatus, set[ProfileStatus]] = {
    ProfileStatus.PENDING: {ProfileStatus.ACTIVE, ProfileStatus.REJECTED},
    ProfileStatus.ACTIVE: {ProfileStatus.SUSPENDED},
    ProfileStatus.SUSPENDED: {ProfileStatus.ACTIVE},
    ProfileStatus.REJECTED: set(),
}

_APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: set(),
    ApprovalStatus.REJECTED: set(),
}


def allowed_next_profile_statuses(status: ProfileStatus) -> list[ProfileStatus]:
    """Return deterministically ordered allowed successors for a profile status."""
    return sorted(_PROFILE_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_profile_transition(old_status: ProfileStatus, new_status: ProfileStatus) -> None:
    if new_status not in _PROFILE_TRANSITIONS.get(old_status, set()):
        raise ApiError(
            status_code=409,
            code="STATUS_TRANSITION_INVALID",
            message="Invalid profile status transition",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": allowed_next_profile_statuses(old_status),
            },
        )


def can_transition_approval(old_status: ApprovalStatus, new_status: ApprovalStatus) -> bool:
    """Approval requests move exactly once, from pending to a terminal outcome."""
    return new_status in _APPROVAL_TRANSITIONS.get(old_status, set())
