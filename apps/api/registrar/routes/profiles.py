"""Profile routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from registrar.errors import NotFoundError
from registrar.routes.dependencies import (
    get_authenticated_principal,
    get_current_profile,
    get_profile_service,
    require_admin,
)
from registrar.schemas.auth import AuthPrincipal
from registrar.schemas.error import AccessDeniedErrorBody, ErrorResponse, NoLeakNotFoundError, StatusTransitionError
from registrar.schemas.profile import Profile
from registrar.services.profiles import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])

_ADMIN_TRANSITION_RESPONSES = {
    401: {"model": AccessDeniedErrorBody},
    403: {"model": AccessDeniedErrorBody},
    404: {"model": NoLeakNotFoundError},
    409: {"model": StatusTransitionError},
}


@router.get("/me", response_model=Profile, responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}})
async def get_my_profile(
    _: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    profile: Annotated[Profile | None, Depends(get_current_profile)],
) -> Profile:
    # Any status: the pending-approval notice reads the caller's own profile here.
    if profile is None:
        raise NotFoundError()
    return profile


@router.post("/{profileId}/suspend", response_model=Profile, responses=_ADMIN_TRANSITION_RESPONSES)
async def suspend_profile(
    profile_id: Annotated[str, Path(alias="profileId")],
    actor: Annotated[Profile, Depends(require_admin)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile:
    return await service.suspend(actor=actor, profile_id=profile_id)


@router.post("/{profileId}/reinstate", response_model=Profile, responses=_ADMIN_TRANSITION_RESPONSES)
async def reinstate_profile(
    profile_id: Annotated[str, Path(alias="profileId")],
    actor: Annotated[Profile, Depends(require_admin)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile:
    return await service.reinstate(actor=actor, profile_id=profile_id)
