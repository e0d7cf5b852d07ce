from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from backend.auth.principal import Principal
from backend.models.user import Role
from backend.routes.appointment_routes import (
    BookAppointmentRequest,
    book_appointment,
    cancel_appointment,
    list_appointments,
)

TEN_AM = datetime(2026, 1, 5, 10, 0)


def _student(student_id: int) -> Principal:
    return Principal(id=student_id, role=Role.STUDENT)


def _professor(professor_id: int) -> Principal:
    return Principal(id=professor_id, role=Role.PROFESSOR)


def test_book_appointment_uses_principal_as_student(engine, professor_id, student_id) -> None:
    engine.add_availability(professor_id, [TEN_AM])

    response = book_appointment(
        data=BookAppointmentRequest(professor_id=professor_id, slot='2026-01-05T10:00:00Z'),
        principal=_student(student_id),
        engine=engine,
    )

    assert response.student_id == student_id
    assert response.professor_id == professor_id
    assert response.slot == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_book_appointment_returns_409_for_taken_slot(engine, professor_id, student_id, make_user) -> None:
    engine.add_availability(professor_id, [TEN_AM])
    engine.book(student_id, professor_id, TEN_AM)

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            data=BookAppointmentRequest(professor_id=professor_id, slot=TEN_AM),
            principal=_student(make_user(Role.STUDENT)),
            engine=engine,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'SlotUnavailable'


def test_book_appointment_returns_422_for_invalid_professor(engine, student_id, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            data=BookAppointmentRequest(professor_id=make_user(Role.STUDENT), slot=TEN_AM),
            principal=_student(student_id),
            engine=engine,
        )

    assert exception_info.value.status_code == 422
    assert exception_info.value.detail['code'] == 'InvalidParty'


def test_cancel_appointment_reopens_slot(engine, professor_id, student_id) -> None:
    engine.add_availability(professor_id, [TEN_AM])
    appointment_id = engine.book(student_id, professor_id, TEN_AM)

    cancel_appointment(appointment_id=appointment_id, principal=_professor(professor_id), engine=engine)

    assert engine.query_availability(professor_id) == [TEN_AM]


def test_cancel_appointment_returns_403_for_other_professor(engine, professor_id, student_id, make_user) -> None:
    engine.add_availability(professor_id, [TEN_AM])
    appointment_id = engine.book(student_id, professor_id, TEN_AM)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(
            appointment_id=appointment_id,
            principal=_professor(make_user(Role.PROFESSOR)),
            engine=engine,
        )

    assert exception_info.value.status_code == 403
    assert engine.query_availability(professor_id) == []


def test_cancel_appointment_returns_404_when_missing(engine, professor_id) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=999, principal=_professor(professor_id), engine=engine)

    assert exception_info.value.status_code == 404


def test_list_appointments_returns_only_own_bookings(engine, professor_id, student_id, make_user) -> None:
    other_professor = make_user(Role.PROFESSOR)
    engine.add_availability(professor_id, [TEN_AM])
    engine.add_availability(other_professor, [TEN_AM])
    appointment_id = engine.book(student_id, professor_id, TEN_AM)
    engine.book(student_id, other_professor, TEN_AM)

    response = list_appointments(principal=_professor(professor_id), engine=engine)

    assert [appointment.id for appointment in response] == [appointment_id]
    assert response[0].slot == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
