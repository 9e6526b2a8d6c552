"""Process-wide session state resolved from the identity provider.

The resolver owns "who is signed in and what is their profile" for the console
process. It is created by the application factory and started and stopped by
the application lifespan rather than living in a module global.

Session-change notifications are enqueued by the provider callback and
dispatched by a single consumer task. Each dispatched change gets a generation
number; a profile lookup only applies its result while its generation is still
the latest, so an older lookup that finishes late never overwrites a newer one.
"""

from __future__ import annotations

import asyncio
import logging

from registrar.adapters.identity import IdentityProvider, Unsubscribe
from registrar.core.logging_safety import principal_ref
from registrar.repositories.base import PROFILES, RecordStore
from registrar.schemas.auth import AuthPrincipal, Session, SessionChange, SessionChangeKind, SessionSnapshot
from registrar.schemas.profile import Profile, Role

logger = logging.getLogger(__name__)


def build_snapshot(
    principal: AuthPrincipal | None,
    profile: Profile | None,
    *,
    is_loading: bool = False,
) -> SessionSnapshot:
    role = profile.role if profile is not None else None
    return SessionSnapshot(
        principal=principal,
        profile=profile,
        is_loading=is_loading,
        is_admin=role is Role.ADMIN,
        is_staff=role is Role.STAFF,
        is_student=role is Role.STUDENT,
    )


class SessionResolver:
    def __init__(self, identity_provider: IdentityProvider, store: RecordStore) -> None:
        self._identity = identity_provider
        self._store = store
        self._session: Session | None = None
        self._profile: Profile | None = None
        self._is_loading = True
        self._generation = 0
        self._events: asyncio.Queue[SessionChange] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._resolutions: set[asyncio.Task[None]] = set()
        self._unsubscribe: Unsubscribe | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def principal(self) -> AuthPrincipal | None:
        return self._session.principal if self._session is not None else None

    @property
    def profile(self) -> Profile | None:
        return self._profile

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_admin(self) -> bool:
        return self._has_role(Role.ADMIN)

    @property
    def is_staff(self) -> bool:
        return self._has_role(Role.STAFF)

    @property
    def is_student(self) -> bool:
        return self._has_role(Role.STUDENT)

    @property
    def running(self) -> bool:
        return self._consumer is not None

    def snapshot(self) -> SessionSnapshot:
        return build_snapshot(self.principal, self._profile, is_loading=self._is_loading)

    def snapshot_for(self, principal: AuthPrincipal) -> SessionSnapshot | None:
        """Return the resolved snapshot only when it belongs to ``principal``."""
        current = self.principal
        if self._is_loading or current is None or current.user_id != principal.user_id:
            return None
        return self.snapshot()

    async def start(self) -> None:
        """Subscribe to the provider and queue resolution of the existing session."""
        if self._consumer is not None:
            return

        events: asyncio.Queue[SessionChange] = asyncio.Queue()
        self._events = events
        # Subscribe before reading the current session so no change is missed.
        self._unsubscribe = self._identity.on_session_change(events.put_nowait)
        session = await self._identity.current_session()
        events.put_nowait(SessionChange(kind=SessionChangeKind.INITIAL_SESSION, session=session))
        self._consumer = asyncio.create_task(self._consume(events))

    async def stop(self) -> None:
        """Unsubscribe and cancel outstanding work; safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = list(self._resolutions)
        if self._consumer is not None:
            tasks.append(self._consumer)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._resolutions.clear()
        self._consumer = None
        self._events = None

    async def settle(self) -> None:
        """Wait until every queued change has been dispatched and resolved."""
        events = self._events
        if events is None:
            return
        await events.join()
        while self._resolutions:
            await asyncio.wait(set(self._resolutions))

    async def _consume(self, events: asyncio.Queue[SessionChange]) -> None:
        while True:
            change = await events.get()
            try:
                self._dispatch(change)
            finally:
                events.task_done()

    def _dispatch(self, change: SessionChange) -> None:
        self._generation += 1
        generation = self._generation

        if change.session is None:
            self._apply(generation, None, None)
            return

        task = asyncio.create_task(self._resolve(generation, change.session))
        self._resolutions.add(task)
        task.add_done_callback(self._resolutions.discard)

    async def _resolve(self, generation: int, session: Session) -> None:
        principal_id = session.principal.user_id
        safe_principal_id = principal_ref(principal_id)
        profile: Profile | None = None
        try:
            record = await self._store.find(PROFILES, {"principal_id": principal_id})
            if record is not None:
                profile = Profile.model_validate(record)
        except Exception:
            # A failed lookup still settles the session with no profile.
            logger.warning("session.resolve_failed principal_id=%s", safe_principal_id, exc_info=True)

        if not self._apply(generation, session, profile):
            logger.debug("session.superseded principal_id=%s generation=%d", safe_principal_id, generation)
            return

        logger.info(
            "session.resolved principal_id=%s profile_found=%s status=%s",
            safe_principal_id,
            profile is not None,
            profile.status.value if profile is not None else None,
        )

    def _apply(self, generation: int, session: Session | None, profile: Profile | None) -> bool:
        if generation != self._generation:
            return False
        self._session = session
        self._profile = profile
        self._is_loading = False
        return True

    def _has_role(self, role: Role) -> bool:
        return self._profile is not None and self._profile.role is role


__all__ = ["SessionResolver", "build_snapshot"]
