"""Approval workflow service layer."""

from __future__ import annotations

from datetime import UTC, datetime
import logging

from registrar.core.logging_safety import profile_ref, request_ref
from registrar.domain.lifecycle import can_transition_approval, ensure_profile_transition
from registrar.errors import NotFoundError, StoreError
from registrar.repositories.base import APPROVAL_REQUESTS, PROFILES, RecordConflictError, RecordStore, RecordStoreError
from registrar.schemas.approval import ApprovalDecision, ApprovalOutcome, ApprovalRequest, ApprovalStatus
from registrar.schemas.profile import Profile, ProfileStatus, Role
from registrar.services.profiles import ensure_active_admin

logger = logging.getLogger(__name__)

_OUTCOMES: dict[ApprovalDecision, tuple[ApprovalStatus, ProfileStatus]] = {
    ApprovalDecision.APPROVE: (ApprovalStatus.APPROVED, ProfileStatus.ACTIVE),
    ApprovalDecision.REJECT: (ApprovalStatus.REJECTED, ProfileStatus.REJECTED),
}

_UNREVIEWED_PATCH = {
    "status": ApprovalStatus.PENDING.value,
    "reviewed_at": None,
    "reviewed_by_profile_id": None,
    "granted_role": None,
}


class ApprovalService:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def list_requests(
        self,
        *,
        actor: Profile | None,
        status: ApprovalStatus | None = None,
    ) -> list[ApprovalRequest]:
        ensure_active_admin(actor)
        filters = {"status": status.value} if status is not None else None
        records = await self._store.list(APPROVAL_REQUESTS, filters, order_by="created_at")
        return [ApprovalRequest.model_validate(record) for record in records]

    async def get_request(self, *, actor: Profile | None, request_id: str) -> ApprovalRequest:
        ensure_active_admin(actor)
        record = await self._store.find(APPROVAL_REQUESTS, {"id": request_id})
        if record is None:
            raise NotFoundError()
        return ApprovalRequest.model_validate(record)

    async def decide(
        self,
        *,
        actor: Profile | None,
        request_id: str,
        decision: ApprovalDecision,
        role_override: Role | None = None,
    ) -> ApprovalOutcome:
        """Apply an administrator's decision to a pending request and its profile.

        A request that is missing or already decided raises ``NotFoundError``,
        so repeating a decision never re-applies it. The pending check is
        repeated by the store as part of the request write, so of two
        concurrent decisions only one lands.
        """
        admin = ensure_active_admin(actor)
        request_status, profile_status = _OUTCOMES[decision]

        record = await self._store.find(APPROVAL_REQUESTS, {"id": request_id})
        if record is None:
            raise NotFoundError()
        request = ApprovalRequest.model_validate(record)
        if not can_transition_approval(request.status, request_status):
            raise NotFoundError("Approval request is no longer pending")

        profile_record = await self._store.find(PROFILES, {"id": request.requester_profile_id})
        if profile_record is None:
            raise NotFoundError("Requester profile not found")
        profile = Profile.model_validate(profile_record)
        ensure_profile_transition(profile.status, profile_status)

        profile_patch: dict[str, str] = {"status": profile_status.value}
        request_patch: dict[str, object] = {
            "status": request_status.value,
            "reviewed_at": datetime.now(UTC),
            "reviewed_by_profile_id": admin.id,
            "granted_role": None,
        }
        if decision is ApprovalDecision.APPROVE:
            granted_role = role_override or request.target_role
            profile_patch["role"] = granted_role.value
            request_patch["granted_role"] = granted_role.value

        try:
            updated_request = await self._store.update(
                APPROVAL_REQUESTS,
                request.id,
                request_patch,
                expected={"status": ApprovalStatus.PENDING.value},
            )
        except RecordConflictError as exc:
            raise NotFoundError("Approval request is no longer pending") from exc
        except RecordStoreError as exc:
            raise StoreError("Approval request could not be updated", table=APPROVAL_REQUESTS) from exc

        try:
            updated_profile = await self._store.update(PROFILES, profile.id, profile_patch)
        except RecordStoreError as exc:
            await self._restore_pending(request.id)
            raise StoreError("Profile could not be updated", table=PROFILES) from exc

        logger.info(
            "approval.decided request_id=%s profile_id=%s actor_id=%s decision=%s granted_role=%s",
            request_ref(request.id),
            profile_ref(profile.id),
            profile_ref(admin.id),
            decision.value,
            request_patch["granted_role"],
        )
        return ApprovalOutcome(
            request=ApprovalRequest.model_validate(updated_request),
            profile=Profile.model_validate(updated_profile),
        )

    async def _restore_pending(self, request_id: str) -> None:
        safe_request_id = request_ref(request_id)
        try:
            await self._store.update(APPROVAL_REQUESTS, request_id, dict(_UNREVIEWED_PATCH))
        except RecordStoreError:
            logger.error("approval.compensation_failed request_id=%s", safe_request_id, exc_info=True)
            return
        logger.warning("approval.compensated request_id=%s", safe_request_id)
