"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from backend.database import Base


class Appointment(Base):
    """Represents a booked appointment. Cancelling deletes the row."""
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("professor_id", "slot", name="uq_appointments_professor_slot"),
    )

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    professor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    slot = Column(DateTime, nullable=False)
