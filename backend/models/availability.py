"""Availability model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.sql import func
from backend.database import Base


class Availability(Base):
    """One row per professor who has ever published availability.

    Also serves as the row that is locked while that professor's slots and
    appointments are being changed.
    """
    __tablename__ = "availability"

    professor_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class AvailabilitySlot(Base):
    """A single open instant in a professor's slot set."""
    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("professor_id", "slot_time", name="uq_availability_slots_professor_time"),
    )

    id = Column(Integer, primary_key=True)
    professor_id = Column(Integer, ForeignKey("availability.professor_id"), nullable=False)
    slot_time = Column(DateTime, nullable=False)
