"""
Check-in API Routes

Live occupancy reads are public; writing a check-in needs a World ID
verified session.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from coffeeworld.api.dependencies import get_checkin_service, get_current_subject
from coffeeworld.api.schemas import (
    CheckInCreate,
    CheckInCreatedResponse,
    CheckInResponse,
    CrowdStatusResponse,
    ErrorResponse,
)
from coffeeworld.crowd.service import CheckInService, Subject


router = APIRouter(prefix="/checkins", tags=["checkins"])


@router.get(
    "",
    response_model=CrowdStatusResponse,
    responses={
        400: {"model": ErrorResponse, "description": "locationId missing"},
        500: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
def get_crowd_status(
    location_id: Optional[str] = Query(None, alias="locationId"),
    service: CheckInService = Depends(get_checkin_service),
):
    """Current number of active check-ins and the crowd level for a shop."""
    crowd = service.get_status(location_id)

    return CrowdStatusResponse(
        location_id=crowd.location_id,
        current_count=crowd.count,
        level=crowd.level,
        check_ins=[CheckInResponse.model_validate(r) for r in crowd.check_ins],
        last_updated=crowd.last_updated,
    )


@router.post(
    "",
    response_model=CheckInCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "locationId missing"},
        401: {"model": ErrorResponse, "description": "Not signed in"},
        403: {"model": ErrorResponse, "description": "World ID verification required"},
        429: {"model": ErrorResponse, "description": "Checked in here too recently"},
    },
)
def create_check_in(
    request: Optional[CheckInCreate] = None,
    subject: Optional[Subject] = Depends(get_current_subject),
    service: CheckInService = Depends(get_checkin_service),
):
    """
    Check in at a shop.

    At most one check-in per user and shop every two hours.
    """
    location_id = request.location_id if request else None
    result = service.check_in(location_id, subject)

    return CheckInCreatedResponse(
        check_in=CheckInResponse.model_validate(result.record),
        current_count=result.count,
        level=result.level,
    )
