"""CRUD access to appointment rows. Booking rules live in the engine."""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.orm import Session

from backend.core.exceptions import NotFound
from backend.models.appointment import Appointment


class AppointmentLedger:
    def create(self, db: Session, *, student_id: int, professor_id: int, slot: datetime) -> Appointment:
        appointment = Appointment(student_id=student_id, professor_id=professor_id, slot=slot)
        db.add(appointment)
        db.flush()
        return appointment

    def get_by_id(self, db: Session, appointment_id: int) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def delete_by_id(self, db: Session, appointment_id: int) -> bool:
        result = db.execute(delete(Appointment).where(Appointment.id == appointment_id))
        return result.rowcount == 1

    def find_by_professor(self, db: Session, professor_id: int) -> list[Appointment]:
        return db.query(Appointment).filter(
            Appointment.professor_id == professor_id,
        ).order_by(Appointment.slot.asc()).all()

    def booked_slots(self, db: Session, professor_id: int) -> set[datetime]:
        rows = db.query(Appointment.slot).filter(Appointment.professor_id == professor_id).all()
        return {slot for (slot,) in rows}

    def is_booked(self, db: Session, professor_id: int, slot: datetime) -> bool:
        return db.query(Appointment.id).filter(
            Appointment.professor_id == professor_id,
            Appointment.slot == slot,
        ).first() is not None
