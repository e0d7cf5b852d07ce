from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import get_current_principal, require_role
from backend.auth.principal import Principal
from backend.core.exceptions import SchedulingError
from backend.core.instants import as_utc
from backend.models.user import Role
from backend.services.dependencies import get_reservation_engine
from backend.services.reservation_engine import ReservationEngine

router = APIRouter(tags=['availability'])

MAX_SLOTS_PER_REQUEST = 500


class AddAvailabilityRequest(BaseModel):
    available_slots: list[datetime]

    @field_validator('available_slots')
    @classmethod
    def validate_available_slots(cls, value: list[datetime]) -> list[datetime]:
        if len(value) > MAX_SLOTS_PER_REQUEST:
            raise ValueError(f'At most {MAX_SLOTS_PER_REQUEST} slots can be published at once.')
        return value


class AddAvailabilityResponse(BaseModel):
    message: str
    added_slots: list[datetime]

    @field_validator('added_slots')
    @classmethod
    def mark_utc(cls, value: list[datetime]) -> list[datetime]:
        return [as_utc(slot) if slot.tzinfo is None else slot for slot in value]


class AvailabilityResponse(BaseModel):
    professor_id: int
    available_slots: list[datetime]

    @field_validator('available_slots')
    @classmethod
    def mark_utc(cls, value: list[datetime]) -> list[datetime]:
        return [as_utc(slot) if slot.tzinfo is None else slot for slot in value]


@router.post('/{professor_id}/availability', response_model=AddAvailabilityResponse)
def add_availability(
    professor_id: int,
    data: AddAvailabilityRequest,
    principal: Principal = Depends(require_role(Role.PROFESSOR)),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    if principal.id != professor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Professors can only publish their own availability.',
        )

    try:
        added = engine.add_availability(professor_id, data.available_slots)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc

    return AddAvailabilityResponse(message='Availability updated successfully', added_slots=added)


@router.get(
    '/{professor_id}/availability',
    response_model=AvailabilityResponse,
    dependencies=[Depends(get_current_principal)],
)
def get_availability(
    professor_id: int,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        free_slots = engine.query_availability(professor_id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc

    return AvailabilityResponse(professor_id=professor_id, available_slots=free_slots)
