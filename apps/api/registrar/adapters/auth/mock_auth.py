"""Unsigned development tokens shared by the in-memory identity provider and its verifier."""

from registrar.adapters.auth.base import AuthVerificationError, TokenVerifier
from registrar.schemas.auth import AuthPrincipal

TEST_TOKEN_SCHEME = "test"


def issue_test_token(user_id: str, email: str | None = None) -> str:
    """Mint ``test:<user_id>`` or ``test:<user_id>:<email>``."""
    fields = [TEST_TOKEN_SCHEME, user_id]
    if email:
        fields.append(email)
    return ":".join(fields)


class MockTokenVerifier(TokenVerifier):
    """Accepts tokens minted by ``issue_test_token``; never enable outside development."""

    def verify_token(self, token: str) -> AuthPrincipal:
        scheme, _, rest = token.partition(":")
        if scheme != TEST_TOKEN_SCHEME or not rest or rest.count(":") > 1:
            raise AuthVerificationError("Invalid bearer token")

        user_id, _, email = rest.partition(":")
        user_id = user_id.strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        return AuthPrincipal(user_id=user_id, email=email.strip() or None)


__all__ = ["MockTokenVerifier", "TEST_TOKEN_SCHEME", "issue_test_token"]
