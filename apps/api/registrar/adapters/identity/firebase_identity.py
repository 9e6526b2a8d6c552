"""Firebase identity provider adapter.

Account management goes through the Admin SDK; password sign-in and token
refresh go through the Identity Toolkit and Secure Token REST endpoints, the
same calls the Firebase client SDKs make.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from registrar.adapters.firebase_app import ensure_firebase_app
from registrar.adapters.identity.base import CredentialRejectedError, IdentityProvider, IdentityProviderError
from registrar.core.logging_safety import mask_email, principal_ref
from registrar.schemas.auth import AuthPrincipal, Session, SessionChangeKind

SIGN_IN_ENDPOINT = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
REFRESH_ENDPOINT = "https://securetoken.googleapis.com/v1/token"
ROLE_CLAIM = "requested_role"

logger = logging.getLogger(__name__)


def _load_firebase_auth(project_id: str | None) -> Any:
    try:
        ensure_firebase_app(project_id)
        from firebase_admin import auth as firebase_auth
    except ImportError as exc:  # pragma: no cover - depends on optional package
        raise IdentityProviderError("Firebase identity provider is unavailable") from exc
    return firebase_auth


def _required(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise IdentityProviderError(f"Identity provider response missing {key}")
    return value


def _expires_in(value: Any) -> int:
    try:
        return int(value) if value is not None else 3600
    except (TypeError, ValueError) as exc:
        raise IdentityProviderError("Identity provider returned an invalid expiry") from exc


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(
        self,
        *,
        web_api_key: str | None,
        project_id: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._web_api_key = web_api_key
        self._project_id = project_id
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._current: Session | None = None

    async def create_account(self, *, email: str, password: str, metadata: dict[str, Any]) -> AuthPrincipal:
        firebase_auth = _load_firebase_auth(self._project_id)
        display_name = str(metadata.get("full_name") or "").strip() or None

        try:
            record = await asyncio.to_thread(
                firebase_auth.create_user,
                email=email,
                password=password,
                display_name=display_name,
            )
        except firebase_auth.EmailAlreadyExistsError as exc:
            raise CredentialRejectedError("User already registered") from exc
        except ValueError as exc:
            # The Admin SDK validates email and password shape with ValueError.
            raise CredentialRejectedError(str(exc)) from exc
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise IdentityProviderError("Account creation failed") from exc

        role = metadata.get("role")
        if role:
            try:
                await asyncio.to_thread(firebase_auth.set_custom_user_claims, record.uid, {ROLE_CLAIM: role})
            except Exception as exc:  # pragma: no cover - provider exception surface
                logger.warning(
                    "identity.claims_failed principal_id=%s",
                    principal_ref(record.uid),
                )
                await self.delete_account(record.uid)
                raise IdentityProviderError("Account metadata could not be attached") from exc

        logger.info(
            "identity.account_created principal_id=%s email=%s",
            principal_ref(record.uid),
            mask_email(email),
        )
        return AuthPrincipal(user_id=record.uid, email=getattr(record, "email", None) or email)

    async def authenticate(self, *, email: str, password: str) -> Session:
        body = await self._post(
            SIGN_IN_ENDPOINT,
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        self._current = Session(
            access_token=_required(body, "idToken"),
            refresh_token=body.get("refreshToken"),
            expires_in=_expires_in(body.get("expiresIn")),
            principal=AuthPrincipal(user_id=_required(body, "localId"), email=body.get("email") or email),
        )
        self._emit(SessionChangeKind.SIGNED_IN, self._current)
        return self._current

    async def current_session(self) -> Session | None:
        return self._current

    async def refresh_session(self, refresh_token: str) -> Session:
        if not refresh_token:
            raise CredentialRejectedError("Missing refresh token")

        body = await self._post(
            REFRESH_ENDPOINT,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        user_id = _required(body, "user_id")
        # The refresh response carries no email; reuse it only for the same user.
        known = self._current.principal if self._current is not None else None
        email = known.email if known is not None and known.user_id == user_id else None
        self._current = Session(
            access_token=_required(body, "id_token"),
            refresh_token=body.get("refresh_token"),
            expires_in=_expires_in(body.get("expires_in")),
            principal=AuthPrincipal(user_id=user_id, email=email),
        )
        self._emit(SessionChangeKind.TOKEN_REFRESHED, self._current)
        return self._current

    async def sign_out(self, user_id: str) -> None:
        firebase_auth = _load_firebase_auth(self._project_id)
        try:
            await asyncio.to_thread(firebase_auth.revoke_refresh_tokens, user_id)
        except firebase_auth.UserNotFoundError:
            pass
        except Exception as exc:  # pragma: no cover - provider exception surface
            logger.warning("identity.revoke_failed principal_id=%s", principal_ref(user_id))
            raise IdentityProviderError("Session revocation failed") from exc

        if self._current is not None and self._current.principal.user_id == user_id:
            self._current = None
            self._emit(SessionChangeKind.SIGNED_OUT, None)

    async def delete_account(self, user_id: str) -> None:
        firebase_auth = _load_firebase_auth(self._project_id)
        try:
            await asyncio.to_thread(firebase_auth.delete_user, user_id)
        except firebase_auth.UserNotFoundError:
            return
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise IdentityProviderError("Account deletion failed") from exc

    async def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        if not self._web_api_key:
            raise IdentityProviderError("Firebase web API key is not configured")

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.post(url, params={"key": self._web_api_key}, **kwargs)
        except httpx.HTTPError as exc:
            raise IdentityProviderError("Identity provider request failed") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            if response.status_code in (400, 401, 403):
                raise CredentialRejectedError(message or "Invalid login credentials")
            raise IdentityProviderError(message or f"Identity provider returned {response.status_code}")
        if not isinstance(body, dict):
            raise IdentityProviderError("Identity provider returned an invalid payload")
        return body


__all__ = ["FirebaseIdentityProvider"]
