"""Dependency wiring for routes."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from registrar.adapters.auth import (
    AuthVerificationError,
    FirebaseTokenVerifier,
    MockTokenVerifier,
    TokenVerifier,
)
from registrar.adapters.identity import FirebaseIdentityProvider, IdentityProvider, InMemoryIdentityProvider
from registrar.core.config import Settings, get_settings
from registrar.core.logging_safety import correlation_ref, principal_ref
from registrar.domain.access import decide, redirect_target
from registrar.errors import AccessDeniedError, ApiError, StoreError
from registrar.repositories.base import RecordStore, RecordStoreError
from registrar.repositories.firestore import FirestoreRecordStore
from registrar.repositories.memory import InMemoryRecordStore
from registrar.schemas.access import Decision, RouteRequirement
from registrar.schemas.auth import AuthPrincipal
from registrar.schemas.profile import Profile
from registrar.services.approvals import ApprovalService
from registrar.services.profiles import ProfileService
from registrar.services.registration import RegistrationService
from registrar.services.session import SessionResolver

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def build_identity_provider(settings: Settings) -> IdentityProvider:
    """Resolve the identity provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseIdentityProvider(
            web_api_key=settings.firebase_web_api_key,
            project_id=settings.firebase_project_id,
            timeout_seconds=settings.identity_timeout_seconds,
        )
    return InMemoryIdentityProvider()


def build_record_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "firestore":
        return FirestoreRecordStore(project_id=settings.firebase_project_id)
    return InMemoryRecordStore()


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve bearer verifier adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseTokenVerifier(
            project_id=settings.firebase_project_id,
            audience=settings.firebase_audience,
        )
    return MockTokenVerifier()


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_session_resolver(request: Request) -> SessionResolver:
    return request.app.state.session_resolver


def get_profile_service(store: Annotated[RecordStore, Depends(get_store)]) -> ProfileService:
    return ProfileService(store)


def get_approval_service(store: Annotated[RecordStore, Depends(get_store)]) -> ApprovalService:
    return ApprovalService(store)


def get_registration_service(
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> RegistrationService:
    return RegistrationService(identity_provider, store)


async def get_optional_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal | None:
    """Verify a bearer token when one is presented; anonymous callers resolve to ``None``."""
    if credentials is None:
        return None

    safe_correlation_id = correlation_ref(_request_correlation_id(request))
    if credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid bearer token")

    try:
        principal = verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        principal_ref(principal.user_id),
    )
    request.state.auth_principal = principal
    return principal


async def get_authenticated_principal(
    principal: Annotated[AuthPrincipal | None, Depends(get_optional_principal)],
) -> AuthPrincipal:
    if principal is None:
        raise _auth_error("Invalid or missing bearer token")
    return principal


async def get_current_profile(
    principal: Annotated[AuthPrincipal | None, Depends(get_optional_principal)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile | None:
    if principal is None:
        return None
    try:
        return await profiles.get_for_principal(principal.user_id)
    except RecordStoreError as exc:
        raise StoreError("Profile lookup failed") from exc


def require_access(requirement: RouteRequirement) -> Callable[..., Awaitable[Profile | None]]:
    """Build a route guard that admits callers only when ``decide`` allows them."""

    async def guard(
        request: Request,
        profile: Annotated[Profile | None, Depends(get_current_profile)],
    ) -> Profile | None:
        decision = decide(profile, requirement)
        if decision is Decision.ALLOW:
            return profile

        redirect_to = redirect_target(decision) or "/"
        logger.info(
            "access.denied correlation_id=%s path=%s requirement=%s decision=%s",
            correlation_ref(_request_correlation_id(request)),
            request.url.path,
            requirement.value,
            decision.value,
        )
        raise AccessDeniedError(decision, redirect_to)

    return guard


require_admin = require_access(RouteRequirement.REQUIRE_ADMIN)
