"""Registration approval routes (administrators only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from registrar.routes.dependencies import get_approval_service, require_admin
from registrar.schemas.approval import ApprovalDecisionRequest, ApprovalOutcome, ApprovalRequest, ApprovalStatus
from registrar.schemas.error import AccessDeniedErrorBody, ErrorResponse, NoLeakNotFoundError, StatusTransitionError
from registrar.schemas.profile import Profile
from registrar.services.approvals import ApprovalService

router = APIRouter(prefix="/approvals", tags=["Approvals"])

_GUARDED_RESPONSES = {401: {"model": AccessDeniedErrorBody}, 403: {"model": AccessDeniedErrorBody}}


@router.get("", response_model=list[ApprovalRequest], responses=_GUARDED_RESPONSES)
async def list_approval_requests(
    actor: Annotated[Profile, Depends(require_admin)],
    service: Annotated[ApprovalService, Depends(get_approval_service)],
    status_filter: Annotated[ApprovalStatus | None, Query(alias="status")] = None,
) -> list[ApprovalRequest]:
    return await service.list_requests(actor=actor, status=status_filter)


@router.get(
    "/{requestId}",
    response_model=ApprovalRequest,
    responses={**_GUARDED_RESPONSES, 404: {"model": NoLeakNotFoundError}},
)
async def get_approval_request(
    request_id: Annotated[str, Path(alias="requestId")],
    actor: Annotated[Profile, Depends(require_admin)],
    service: Annotated[ApprovalService, Depends(get_approval_service)],
) -> ApprovalRequest:
    return await service.get_request(actor=actor, request_id=request_id)


@router.post(
    "/{requestId}/decision",
    response_model=ApprovalOutcome,
    responses={
        **_GUARDED_RESPONSES,
        404: {"model": NoLeakNotFoundError},
        409: {"model": StatusTransitionError},
        502: {"model": ErrorResponse},
    },
)
async def decide_approval_request(
    request_id: Annotated[str, Path(alias="requestId")],
    payload: ApprovalDecisionRequest,
    actor: Annotated[Profile, Depends(require_admin)],
    service: Annotated[ApprovalService, Depends(get_approval_service)],
) -> ApprovalOutcome:
    return await service.decide(
        actor=actor,
        request_id=request_id,
        decision=payload.decision,
        role_override=payload.role_override,
    )
