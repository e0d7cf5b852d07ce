"""Per-professor set of open instants.

Every mutation is a single statement against ``availability_slots`` so that
membership is decided by the store, never by a list read into memory and
written back. Callers own the session and the transaction.
"""

from datetime import datetime
from typing import Iterable

from sqlalchemy import delete
from sqlalchemy.orm import Session

from backend.core.instants import normalize_instant
from backend.models.availability import Availability, AvailabilitySlot


class SlotSet:
    def get_record(self, db: Session, professor_id: int, for_update: bool = False) -> Availability | None:
        query = db.query(Availability).filter(Availability.professor_id == professor_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def ensure_record(self, db: Session, professor_id: int) -> Availability:
        record = self.get_record(db, professor_id, for_update=True)
        if record is None:
            record = Availability(professor_id=professor_id)
            db.add(record)
            db.flush()
        return record

    def add_slots(self, db: Session, professor_id: int, instants: Iterable[datetime]) -> list[datetime]:
        """Merge ``instants`` into the set and return the ones that were new.

        Instants already present, or repeated within ``instants``, are dropped.
        """
        self.ensure_record(db, professor_id)

        candidates = {normalize_instant(instant) for instant in instants}
        if not candidates:
            return []

        existing = {
            slot_time
            for (slot_time,) in db.query(AvailabilitySlot.slot_time).filter(
                AvailabilitySlot.professor_id == professor_id,
                AvailabilitySlot.slot_time.in_(list(candidates)),
            )
        }

        added = sorted(candidates - existing)
        db.add_all(AvailabilitySlot(professor_id=professor_id, slot_time=slot_time) for slot_time in added)
        db.flush()

        return added

    def remove_slot(self, db: Session, professor_id: int, instant: datetime) -> bool:
        """Remove ``instant`` if present. Returns whether a row was removed."""
        result = db.execute(
            delete(AvailabilitySlot).where(
                AvailabilitySlot.professor_id == professor_id,
                AvailabilitySlot.slot_time == normalize_instant(instant),
            )
        )
        return result.rowcount == 1

    def contains(self, db: Session, professor_id: int, instant: datetime) -> bool:
        match = db.query(AvailabilitySlot.id).filter(
            AvailabilitySlot.professor_id == professor_id,
            AvailabilitySlot.slot_time == normalize_instant(instant),
        ).first()
        return match is not None

    def list_available(self, db: Session, professor_id: int) -> list[datetime]:
        rows = db.query(AvailabilitySlot.slot_time).filter(
            AvailabilitySlot.professor_id == professor_id,
        ).order_by(AvailabilitySlot.slot_time.asc()).all()
        return [slot_time for (slot_time,) in rows]
