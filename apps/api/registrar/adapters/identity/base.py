"""Identity provider client interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
import logging
from typing import Any

from registrar.schemas.auth import AuthPrincipal, Session, SessionChange, SessionChangeKind

SessionChangeCallback = Callable[[SessionChange], None]
Unsubscribe = Callable[[], None]

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Raised when the identity provider cannot complete a request."""


class CredentialRejectedError(IdentityProviderError):
    """Raised when the provider rejects credentials (duplicate email, weak password, bad login)."""


class IdentityProvider(ABC):
    """Provider-neutral account and session interface.

    Session-change notifications are pushed to subscribers synchronously, in
    the order the provider emits them.
    """

    def __init__(self) -> None:
        self._listeners: list[SessionChangeCallback] = []

    @abstractmethod
    async def create_account(self, *, email: str, password: str, metadata: dict[str, Any]) -> AuthPrincipal:
        """Create a principal; ``metadata`` is attached as auxiliary account data."""

    @abstractmethod
    async def authenticate(self, *, email: str, password: str) -> Session:
        """Sign in and make the issued session current."""

    @abstractmethod
    async def current_session(self) -> Session | None:
        """Return the current session, if any."""

    @abstractmethod
    async def refresh_session(self, refresh_token: str) -> Session:
        """Exchange a caller-supplied refresh token for a new session."""

    @abstractmethod
    async def sign_out(self, user_id: str) -> None:
        """End every session of ``user_id``; the current session is dropped if it is theirs."""

    @abstractmethod
    async def delete_account(self, user_id: str) -> None:
        """Remove a principal created by ``create_account``."""

    def on_session_change(self, callback: SessionChangeCallback) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, kind: SessionChangeKind, session: Session | None) -> None:
        change = SessionChange(kind=kind, session=session)
        logger.debug("identity.session_change kind=%s listeners=%d", kind.value, len(self._listeners))
        for listener in list(self._listeners):
            listener(change)


__all__ = [
    "CredentialRejectedError",
    "IdentityProvider",
    "IdentityProviderError",
    "SessionChangeCallback",
    "Unsubscribe",
]
