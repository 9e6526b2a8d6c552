"""Firebase Auth token verifier adapter."""

from __future__ import annotations

from registrar.adapters.auth.base import AuthVerificationError, TokenVerifier
from registrar.adapters.firebase_app import ensure_firebase_app
from registrar.schemas.auth import AuthPrincipal


class FirebaseTokenVerifier(TokenVerifier):
    """Verifies Firebase ID tokens issued to console users."""

    def __init__(self, project_id: str | None, audience: str | None) -> None:
        self._project_id = project_id
        self._audience = audience

    def verify_token(self, token: str) -> AuthPrincipal:
        try:
            ensure_firebase_app(self._project_id)
            from firebase_admin import auth as firebase_auth
        except ImportError as exc:  # pragma: no cover - depends on optional package
            raise AuthVerificationError("Firebase auth verifier is unavailable") from exc

        try:
            decoded = firebase_auth.verify_id_token(token, check_revoked=True)
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise AuthVerificationError("Invalid bearer token") from exc

        self._check_claims(decoded)

        user_id = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        email = str(decoded.get("email") or "").strip()
        return AuthPrincipal(user_id=user_id, email=email or None)

    def _check_claims(self, decoded: dict) -> None:
        audience = str(decoded.get("aud", ""))
        if self._audience and audience != self._audience:
            raise AuthVerificationError("Invalid bearer token audience")

        if self._project_id:
            issuer = str(decoded.get("iss", ""))
            if self._project_id not in issuer and audience != self._project_id:
                raise AuthVerificationError("Invalid bearer token issuer")


__all__ = ["FirebaseTokenVerifier"]
