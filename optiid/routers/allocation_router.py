"""
Allocation router.

Allocate a free label with a signed authorization, and report an owner's
registration status. Neither endpoint writes to the registry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..allocation_service import AllocationService
from ..dependencies import get_allocation_service
from ..logging_config import get_logger
from ..rate_limiter import check_allocate_rate_limit
from ..schemas import (
    AllocateRequest,
    AllocationData,
    AllocationResponse,
    ErrorResponse,
    StatusData,
    StatusResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["allocation"])


@router.post(
    "/register",
    response_model=AllocationResponse,
    responses={
        400: {"description": "Invalid owner address", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Partition not configured", "model": ErrorResponse},
        503: {"description": "No free label found", "model": ErrorResponse},
    },
    summary="Allocate a label",
    dependencies=[Depends(check_allocate_rate_limit)],
)
def allocate(
    request: AllocateRequest,
    service: AllocationService = Depends(get_allocation_service),
):
    """
    Pick a free label and return an authorization the owner can submit.

    The label is only reserved once the authorization is registered;
    two callers may be offered the same label.
    """
    data = service.allocate(request.owner, request.partition)
    return AllocationResponse(data=AllocationData(**data))


@router.get(
    "/register",
    response_model=StatusResponse,
    responses={400: {"description": "Invalid owner address", "model": ErrorResponse}},
    summary="Registration status",
)
def registration_status(
    owner: Optional[str] = Query(None, description="Owner address"),
    service: AllocationService = Depends(get_allocation_service),
):
    """Report how many domains an owner holds and the per-account limit."""
    return StatusResponse(data=StatusData(**service.status(owner)))
