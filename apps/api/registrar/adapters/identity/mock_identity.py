"""In-memory identity provider for local development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from registrar.adapters.auth.mock_auth import issue_test_token
from registrar.adapters.identity.base import CredentialRejectedError, IdentityProvider, IdentityProviderError
from registrar.schemas.auth import AuthPrincipal, Session, SessionChangeKind

MIN_PASSWORD_LENGTH = 6


@dataclass(slots=True)
class AccountRecord:
    user_id: str
    email: str
    password: str
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemoryIdentityProvider(IdentityProvider):
    """Deterministic accounts whose access tokens are accepted by ``MockTokenVerifier``.

    Refresh tokens are opaque, single use and tracked per user; signing a user
    out invalidates only that user's refresh tokens.
    """

    def __init__(self) -> None:
        super().__init__()
        self.accounts: dict[str, AccountRecord] = {}
        self._current: Session | None = None
        self._refresh_tokens: dict[str, str] = {}
        self.create_account_failure_message: str | None = None

    async def create_account(self, *, email: str, password: str, metadata: dict[str, Any]) -> AuthPrincipal:
        if self.create_account_failure_message is not None:
            message = self.create_account_failure_message
            self.create_account_failure_message = None
            raise IdentityProviderError(message)

        key = email.strip().lower()
        if key in self.accounts:
            raise CredentialRejectedError("User already registered")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise CredentialRejectedError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        account = AccountRecord(
            user_id=f"user-{uuid4()}",
            email=key,
            password=password,
            metadata=dict(metadata),
        )
        self.accounts[key] = account
        return AuthPrincipal(user_id=account.user_id, email=account.email)

    async def authenticate(self, *, email: str, password: str) -> Session:
        account = self.accounts.get(email.strip().lower())
        if account is None or account.password != password:
            raise CredentialRejectedError("Invalid login credentials")

        self._current = self._issue_session(account)
        self._emit(SessionChangeKind.SIGNED_IN, self._current)
        return self._current

    async def current_session(self) -> Session | None:
        return self._current

    async def refresh_session(self, refresh_token: str) -> Session:
        # Refresh tokens are single use.
        user_id = self._refresh_tokens.pop(refresh_token, None)
        if user_id is None:
            raise CredentialRejectedError("Invalid refresh token")

        account = self._account_for(user_id)
        if account is None:
            raise CredentialRejectedError("Account no longer exists")

        self._current = self._issue_session(account)
        self._emit(SessionChangeKind.TOKEN_REFRESHED, self._current)
        return self._current

    async def sign_out(self, user_id: str) -> None:
        self._refresh_tokens = {token: owner for token, owner in self._refresh_tokens.items() if owner != user_id}
        if self._current is not None and self._current.principal.user_id == user_id:
            self._current = None
            self._emit(SessionChangeKind.SIGNED_OUT, None)

    async def delete_account(self, user_id: str) -> None:
        account = self._account_for(user_id)
        if account is not None:
            del self.accounts[account.email]

    def _account_for(self, user_id: str) -> AccountRecord | None:
        return next((account for account in self.accounts.values() if account.user_id == user_id), None)

    def _issue_session(self, account: AccountRecord) -> Session:
        refresh_token = f"refresh-{uuid4()}"
        self._refresh_tokens[refresh_token] = account.user_id
        return Session(
            access_token=issue_test_token(account.user_id, account.email),
            refresh_token=refresh_token,
            principal=AuthPrincipal(user_id=account.user_id, email=account.email),
        )


__all__ = ["AccountRecord", "InMemoryIdentityProvider"]
