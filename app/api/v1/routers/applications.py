import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api import deps
from app.core.errors import raise_for_error
from app.schemas.applications import (
    ApplicationCreate,
    ApplicationDTO,
    DecisionCreate,
    DecisionDTO,
)
from app.services.applications import ApplicationLifecycleService
from app.services.decisions import DecisionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "",
    response_model=ApplicationDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a loan application",
)
async def create_application(
    payload: ApplicationCreate,
    actor_id: str = Depends(deps.get_current_actor),
    service: ApplicationLifecycleService = Depends(deps.get_lifecycle_service),
) -> ApplicationDTO:
    logger.info("Application submitted by %s for subject %s", actor_id, payload.subject_id)
    result = await service.create_application(
        payload.subject_id,
        payload.requested_amount,
        term_months=payload.term_months,
        purpose=payload.purpose,
    )
    if not result.ok:
        raise_for_error(result.error)
    return ApplicationDTO.model_validate(result.value)


@router.get(
    "/{application_id}",
    response_model=ApplicationDTO,
    summary="Get a loan application",
)
async def get_application(
    application_id: UUID,
    actor_id: str = Depends(deps.get_current_actor),
    service: ApplicationLifecycleService = Depends(deps.get_lifecycle_service),
) -> ApplicationDTO:
    result = await service.get_application(application_id)
    if not result.ok:
        raise_for_error(result.error)
    return ApplicationDTO.model_validate(result.value)


@router.get(
    "/{application_id}/status",
    response_model=ApplicationDTO,
    summary="Get the current status of a loan application",
)
async def get_application_status(
    application_id: UUID,
    actor_id: str = Depends(deps.get_current_actor),
    service: ApplicationLifecycleService = Depends(deps.get_lifecycle_service),
) -> ApplicationDTO:
    result = await service.get_application_status(application_id)
    if not result.ok:
        raise_for_error(result.error)
    return ApplicationDTO.model_validate(result.value)


@router.post(
    "/{application_id}/decisions",
    response_model=DecisionDTO,
    status_code=status.HTTP_200_OK,
    summary="Approve or reject a pending loan application",
)
async def submit_decision(
    application_id: UUID,
    payload: DecisionCreate,
    actor_id: str = Depends(deps.get_current_actor),
    service: DecisionService = Depends(deps.get_decision_service),
) -> DecisionDTO:
    result = await service.submit_decision(
        application_id,
        payload.outcome,
        staff_id=actor_id,
        reason=payload.reason,
    )
    if not result.ok:
        raise_for_error(result.error)
    return DecisionDTO.model_validate(result.value)


@router.get(
    "/{application_id}/decisions",
    response_model=list[DecisionDTO],
    summary="List decisions recorded for a loan application",
)
async def list_decisions(
    application_id: UUID,
    actor_id: str = Depends(deps.get_current_actor),
    service: DecisionService = Depends(deps.get_decision_service),
) -> list[DecisionDTO]:
    result = await service.list_decisions(application_id)
    if not result.ok:
        raise_for_error(result.error)
    return [DecisionDTO.model_validate(item) for item in result.value]
