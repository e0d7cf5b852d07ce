from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import require_role
from backend.auth.principal import Principal
from backend.core.exceptions import SchedulingError
from backend.core.instants import as_utc, normalize_instant
from backend.models.user import Role
from backend.services.dependencies import get_reservation_engine
from backend.services.reservation_engine import ReservationEngine

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    professor_id: int
    slot: datetime


class AppointmentResponse(BaseModel):
    id: int
    student_id: int
    professor_id: int
    slot: datetime

    class Config:
        from_attributes = True

    @field_validator('slot')
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        return as_utc(value) if value.tzinfo is None else value


@router.post('/book', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    principal: Principal = Depends(require_role(Role.STUDENT)),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        appointment_id = engine.book(principal.id, data.professor_id, data.slot)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc

    return AppointmentResponse(
        id=appointment_id,
        student_id=principal.id,
        professor_id=data.professor_id,
        slot=normalize_instant(data.slot),
    )


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def cancel_appointment(
    appointment_id: int,
    principal: Principal = Depends(require_role(Role.PROFESSOR)),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        engine.cancel(principal.id, appointment_id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    principal: Principal = Depends(require_role(Role.PROFESSOR)),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        appointments = engine.list_appointments(principal.id)
    except SchedulingError as exc:
        raise exc.to_http_exception() from exc

    return [AppointmentResponse.model_validate(appointment) for appointment in appointments]
