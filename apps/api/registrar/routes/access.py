"""Route access decision endpoint for the console's navigation guard."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from registrar.domain.access import decide, redirect_target, requirement_for_path
from registrar.routes.dependencies import get_current_profile
from registrar.schemas.access import AccessDecisionResponse
from registrar.schemas.error import ErrorResponse
from registrar.schemas.profile import Profile

router = APIRouter(prefix="/access", tags=["Access"])


@router.get("", response_model=AccessDecisionResponse, responses={401: {"model": ErrorResponse}})
async def get_access_decision(
    path: Annotated[str, Query(min_length=1)],
    profile: Annotated[Profile | None, Depends(get_current_profile)],
) -> AccessDecisionResponse:
    requirement = requirement_for_path(path)
    decision = decide(profile, requirement)
    return AccessDecisionResponse(
        path=path,
        requirement=requirement,
        decision=decision,
        redirect_to=redirect_target(decision),
    )
