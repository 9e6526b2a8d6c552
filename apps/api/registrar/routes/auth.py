"""Authentication, registration and console session routes.

Login is the only session route open to anonymous callers. Refresh, logout
and the session snapshot act on the bearer's own principal and never on
whoever else last signed in to this process.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from registrar.adapters.identity import CredentialRejectedError, IdentityProvider, IdentityProviderError
from registrar.errors import CredentialError, IdentityUnavailableError, StoreError
from registrar.repositories.base import RecordStoreError
from registrar.routes.dependencies import (
    get_authenticated_principal,
    get_identity_provider,
    get_profile_service,
    get_registration_service,
    get_session_resolver,
)
from registrar.schemas.auth import (
    AuthPrincipal,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    RegistrationResult,
    Session,
    SessionSnapshot,
)
from registrar.schemas.error import ErrorResponse
from registrar.services.profiles import ProfileService
from registrar.services.registration import RegistrationService
from registrar.services.session import SessionResolver, build_snapshot

router = APIRouter(prefix="/auth", tags=["Auth"])

_PROVIDER_ERRORS = {400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}


async def _caller_snapshot(
    principal: AuthPrincipal,
    resolver: SessionResolver,
    profiles: ProfileService,
) -> SessionSnapshot:
    snapshot = resolver.snapshot_for(principal)
    if snapshot is not None:
        return snapshot
    try:
        profile = await profiles.get_for_principal(principal.user_id)
    except RecordStoreError as exc:
        raise StoreError("Profile lookup failed") from exc
    return build_snapshot(principal, profile)


async def _login_response(session: Session, resolver: SessionResolver, profiles: ProfileService) -> LoginResponse:
    await resolver.settle()
    return LoginResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        session=await _caller_snapshot(session.principal, resolver, profiles),
    )


@router.post(
    "/register",
    response_model=RegistrationResult,
    status_code=status.HTTP_201_CREATED,
    responses=_PROVIDER_ERRORS,
)
async def register(
    payload: RegisterRequest,
    service: Annotated[RegistrationService, Depends(get_registration_service)],
) -> RegistrationResult:
    return await service.register(
        email=payload.email,
        password=payload.password,
        role=payload.role,
        form_data=payload.form_data,
    )


@router.post("/login", response_model=LoginResponse, responses=_PROVIDER_ERRORS)
async def login(
    payload: LoginRequest,
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> LoginResponse:
    try:
        session = await identity_provider.authenticate(email=payload.email, password=payload.password)
    except CredentialRejectedError as exc:
        raise CredentialError(str(exc)) from exc
    except IdentityProviderError as exc:
        raise IdentityUnavailableError(str(exc) or "Identity provider unavailable") from exc
    return await _login_response(session, resolver, profiles)


@router.post(
    "/refresh",
    response_model=LoginResponse,
    responses={**_PROVIDER_ERRORS, 401: {"model": ErrorResponse}},
)
async def refresh(
    payload: RefreshRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> LoginResponse:
    try:
        session = await identity_provider.refresh_session(payload.refresh_token)
    except CredentialRejectedError as exc:
        raise CredentialError(str(exc)) from exc
    except IdentityProviderError as exc:
        raise IdentityUnavailableError(str(exc) or "Identity provider unavailable") from exc
    if session.principal.user_id != principal.user_id:
        raise CredentialError("Refresh token does not belong to the caller")
    return await _login_response(session, resolver, profiles)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def logout(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
) -> Response:
    try:
        await identity_provider.sign_out(principal.user_id)
    except IdentityProviderError as exc:
        raise IdentityUnavailableError(str(exc) or "Identity provider unavailable") from exc
    await resolver.settle()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session", response_model=SessionSnapshot, responses={401: {"model": ErrorResponse}})
async def get_session(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> SessionSnapshot:
    return await _caller_snapshot(principal, resolver, profiles)
