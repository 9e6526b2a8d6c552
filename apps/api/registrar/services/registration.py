"""Registration workflow: principal, pending profile and approval request.

The three writes are ordered and each depends on the previous one. The store
and the identity provider share no transaction, so a failure after the first
write is undone by compensating deletes before the error is raised.
"""

from __future__ import annotations

import logging
from typing import Any

from registrar.adapters.identity import CredentialRejectedError, IdentityProvider, IdentityProviderError
from registrar.core.logging_safety import mask_email, principal_ref, profile_ref, request_ref
from registrar.errors import CredentialError, IdentityUnavailableError, ProfileWriteError, StoreError
from registrar.repositories.base import APPROVAL_REQUESTS, PROFILES, RecordStore, RecordStoreError
from registrar.schemas.approval import ApprovalRequest, ApprovalStatus
from registrar.schemas.auth import AuthPrincipal, RegistrationResult
from registrar.schemas.profile import Profile, ProfileStatus, Role

logger = logging.getLogger(__name__)


def derive_full_name(form_data: dict[str, Any]) -> str:
    """Prefer an explicit full name; otherwise join first and last name."""
    explicit = str(form_data.get("full_name") or "").strip()
    if explicit:
        return explicit
    first = str(form_data.get("first_name") or "").strip()
    last = str(form_data.get("last_name") or "").strip()
    return f"{first} {last}".strip()


class RegistrationService:
    def __init__(self, identity_provider: IdentityProvider, store: RecordStore) -> None:
        self._identity = identity_provider
        self._store = store

    async def register(
        self,
        *,
        email: str,
        password: str,
        role: Role,
        form_data: dict[str, Any],
    ) -> RegistrationResult:
        metadata = {**form_data, "role": role.value}
        try:
            principal = await self._identity.create_account(email=email, password=password, metadata=metadata)
        except CredentialRejectedError as exc:
            logger.info("registration.rejected email=%s", mask_email(email))
            raise CredentialError(str(exc)) from exc
        except IdentityProviderError as exc:
            raise IdentityUnavailableError(str(exc) or "Identity provider unavailable") from exc

        safe_principal_id = principal_ref(principal.user_id)

        try:
            profile_record = await self._store.insert(
                PROFILES,
                {
                    "principal_id": principal.user_id,
                    "email": email,
                    "full_name": derive_full_name(form_data),
                    "phone": str(form_data["phone"]).strip() if form_data.get("phone") else None,
                    "role": role.value,
                    "status": ProfileStatus.PENDING.value,
                },
            )
        except RecordStoreError as exc:
            logger.warning("registration.profile_write_failed principal_id=%s", safe_principal_id)
            await self._compensate(principal=principal)
            raise ProfileWriteError("Profile could not be created", table=PROFILES) from exc

        profile = Profile.model_validate(profile_record)

        try:
            request_record = await self._store.insert(
                APPROVAL_REQUESTS,
                {
                    "requester_profile_id": profile.id,
                    "target_role": role.value,
                    "status": ApprovalStatus.PENDING.value,
                    "submitted_payload": dict(form_data),
                },
            )
        except RecordStoreError as exc:
            logger.warning("registration.approval_write_failed principal_id=%s", safe_principal_id)
            await self._compensate(principal=principal, profile_id=profile.id)
            raise StoreError("Approval request could not be created", table=APPROVAL_REQUESTS) from exc

        approval_request = ApprovalRequest.model_validate(request_record)
        logger.info(
            "registration.created principal_id=%s profile_id=%s request_id=%s role=%s",
            safe_principal_id,
            profile_ref(profile.id),
            request_ref(approval_request.id),
            role.value,
        )
        return RegistrationResult(principal=principal, profile=profile, approval_request=approval_request)

    async def _compensate(self, *, principal: AuthPrincipal, profile_id: str | None = None) -> None:
        """Undo earlier writes in reverse order; failures are logged, never raised."""
        safe_principal_id = principal_ref(principal.user_id)
        compensated = True
        if profile_id is not None:
            try:
                await self._store.delete(PROFILES, profile_id)
            except RecordStoreError:
                compensated = False
                logger.error(
                    "registration.compensation_failed principal_id=%s step=delete_profile",
                    safe_principal_id,
                    exc_info=True,
                )
        try:
            await self._identity.delete_account(principal.user_id)
        except IdentityProviderError:
            compensated = False
            logger.error(
                "registration.compensation_failed principal_id=%s step=delete_account",
                safe_principal_id,
                exc_info=True,
            )
        if compensated:
            logger.info("registration.compensated principal_id=%s", safe_principal_id)
