"""Profile service layer."""

import logging

from registrar.core.logging_safety import profile_ref
from registrar.domain.lifecycle import ensure_profile_transition
from registrar.errors import NotFoundError, StoreError, UnauthorizedError
from registrar.repositories.base import PROFILES, RecordStore, RecordStoreError
from registrar.schemas.profile import Profile, ProfileStatus, Role

logger = logging.getLogger(__name__)


def ensure_active_admin(actor: Profile | None) -> Profile:
    """Re-validate that the acting profile is an active administrator."""
    if actor is None or actor.role is not Role.ADMIN or actor.status is not ProfileStatus.ACTIVE:
        raise UnauthorizedError("Only active administrators may perform this action")
    return actor


class ProfileService:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def get_for_principal(self, principal_id: str) -> Profile | None:
        record = await self._store.find(PROFILES, {"principal_id": principal_id})
        return Profile.model_validate(record) if record is not None else None

    async def get_profile(self, profile_id: str) -> Profile:
        record = await self._store.find(PROFILES, {"id": profile_id})
        if record is None:
            raise NotFoundError()
        return Profile.model_validate(record)

    async def suspend(self, *, actor: Profile | None, profile_id: str) -> Profile:
        admin = ensure_active_admin(actor)
        if admin.id == profile_id:
            raise UnauthorizedError("Administrators cannot suspend their own profile")
        return await self._change_status(actor=admin, profile_id=profile_id, new_status=ProfileStatus.SUSPENDED)

    async def reinstate(self, *, actor: Profile | None, profile_id: str) -> Profile:
        admin = ensure_active_admin(actor)
        return await self._change_status(actor=admin, profile_id=profile_id, new_status=ProfileStatus.ACTIVE)

    async def _change_status(self, *, actor: Profile, profile_id: str, new_status: ProfileStatus) -> Profile:
        profile = await self.get_profile(profile_id)
        ensure_profile_transition(profile.status, new_status)

        try:
            record = await self._store.update(PROFILES, profile.id, {"status": new_status.value})
        except RecordStoreError as exc:
            raise StoreError("Profile status could not be saved", table=PROFILES) from exc

        logger.info(
            "profile.status_changed profile_id=%s actor_id=%s prev_status=%s new_status=%s",
            profile_ref(profile.id),
            profile_ref(actor.id),
            profile.status.value,
            new_status.value,
        )
        return Profile.model_validate(record)
