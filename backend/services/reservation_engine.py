"""
Reservation engine.

The only component allowed to move an instant between a professor's slot set
and the appointment ledger. Each state change runs as one transaction while
holding that professor's lock, so:

- concurrent bookings of the same (professor, instant) admit exactly one
  winner;
- work on different professors never waits on each other;
- a failure rolls back both halves and leaves the data exactly as it was.

On PostgreSQL the professor's ``availability`` row is also locked with
``SELECT ... FOR UPDATE`` to serialise against other service instances.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from threading import Lock
from typing import Callable, Iterable, Iterator, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidParty,
    NotFound,
    SlotUnavailable,
    TransientStoreFailure,
)
from backend.core.instants import normalize_instant
from backend.database import Database
from backend.models.appointment import Appointment
from backend.models.user import Role, User
from backend.services.appointment_ledger import AppointmentLedger
from backend.services.slot_set import SlotSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE for foreign_key_violation on PostgreSQL.
_FOREIGN_KEY_VIOLATION = '23503'


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    if code is not None:
        return code == _FOREIGN_KEY_VIOLATION
    return 'foreign key constraint' in str(orig).lower()


class ReservationEngine:
    def __init__(
        self,
        database: Database,
        slot_set: SlotSet | None = None,
        ledger: AppointmentLedger | None = None,
        verify_student_identity: bool | None = None,
    ) -> None:
        self._database = database
        self.slots = slot_set or SlotSet()
        self.ledger = ledger or AppointmentLedger()
        if verify_student_identity is None:
            verify_student_identity = config.VERIFY_STUDENT_IDENTITY
        self.verify_student_identity = verify_student_identity

        self._locks: dict[int, Lock] = {}
        self._locks_guard = Lock()

    def add_availability(
        self,
        professor_id: int,
        instants: Iterable[datetime],
        timeout: float | None = None,
    ) -> list[datetime]:
        """Publish ``instants`` for a professor and return the newly opened ones.

        Instants that are already open, or currently booked, are accepted and
        left as they are.
        """
        slots = {normalize_instant(instant) for instant in instants}
        return self._with_retry(
            'add_availability',
            lambda: self._add_availability(professor_id, slots, self._timeout(timeout)),
        )

    def query_availability(self, professor_id: int, timeout: float | None = None) -> list[datetime]:
        return self._with_retry(
            'query_availability',
            lambda: self._query_availability(professor_id, self._timeout(timeout)),
        )

    def book(
        self,
        student_id: int,
        professor_id: int,
        instant: datetime,
        timeout: float | None = None,
    ) -> int:
        slot = normalize_instant(instant)
        return self._with_retry(
            'book',
            lambda: self._book(student_id, professor_id, slot, self._timeout(timeout)),
        )

    def cancel(self, requester_id: int, appointment_id: int, timeout: float | None = None) -> None:
        self._with_retry(
            'cancel',
            lambda: self._cancel(requester_id, appointment_id, self._timeout(timeout)),
        )

    def list_appointments(self, professor_id: int, timeout: float | None = None) -> list[Appointment]:
        def _list() -> list[Appointment]:
            with self._unit_of_work(self._timeout(timeout)) as db:
                return self.ledger.find_by_professor(db, professor_id)

        return self._with_retry('list_appointments', _list)

    def _add_availability(self, professor_id: int, slots: set[datetime], timeout: float) -> list[datetime]:
        with self._exclusive(professor_id, timeout), self._unit_of_work(timeout) as db:
            self._require_party(db, professor_id, Role.PROFESSOR)
            # A booked instant stays booked; cancelling it reopens it.
            booked = self.ledger.booked_slots(db, professor_id)
            added = self.slots.add_slots(db, professor_id, slots - booked)

        logger.info('Professor %s published %d new slot(s)', professor_id, len(added))
        return added

    def _query_availability(self, professor_id: int, timeout: float) -> list[datetime]:
        with self._unit_of_work(timeout) as db:
            if self.slots.get_record(db, professor_id) is None:
                raise NotFound('No availability found.')

            # Rows written before bookings removed their slot may still list
            # booked instants, so subtract the ledger.
            booked = self.ledger.booked_slots(db, professor_id)
            return [slot for slot in self.slots.list_available(db, professor_id) if slot not in booked]

    def _book(self, student_id: int, professor_id: int, slot: datetime, timeout: float) -> int:
        with self._exclusive(professor_id, timeout), self._unit_of_work(timeout) as db:
            self._require_party(db, professor_id, Role.PROFESSOR)
            if self.verify_student_identity:
                self._require_party(db, student_id, Role.STUDENT)

            record = self.slots.get_record(db, professor_id, for_update=True)
            if record is None or not self.slots.contains(db, professor_id, slot):
                raise SlotUnavailable('Slot not available.')
            # Older rows may still list an instant that is already booked.
            if self.ledger.is_booked(db, professor_id, slot):
                raise SlotUnavailable('Slot not available.')

            appointment = self.ledger.create(db, student_id=student_id, professor_id=professor_id, slot=slot)
            if not self.slots.remove_slot(db, professor_id, slot):
                raise Conflict('Slot was taken by another request.')
            appointment_id = appointment.id

        logger.info(
            'Student %s booked professor %s at %s (appointment %s)',
            student_id,
            professor_id,
            slot.isoformat(),
            appointment_id,
        )
        return appointment_id

    def _cancel(self, requester_id: int, appointment_id: int, timeout: float) -> None:
        with self._unit_of_work(timeout) as db:
            professor_id = self.ledger.get_by_id(db, appointment_id).professor_id

        if professor_id != requester_id:
            raise Forbidden('Only the professor who owns this appointment can cancel it.')

        with self._exclusive(professor_id, timeout), self._unit_of_work(timeout) as db:
            self.slots.get_record(db, professor_id, for_update=True)
            # Re-read under the lock; a concurrent cancel may have won.
            slot = self.ledger.get_by_id(db, appointment_id).slot
            self.ledger.delete_by_id(db, appointment_id)
            self.slots.add_slots(db, professor_id, [slot])

        logger.info('Professor %s cancelled appointment %s, reopened %s', professor_id, appointment_id, slot.isoformat())

    def _require_party(self, db: Session, user_id: int, role: Role) -> User:
        user = db.get(User, user_id)
        if user is None or not user.has_role(role):
            raise InvalidParty(f'User {user_id} is not a {role.value}.')
        return user

    def _timeout(self, timeout: float | None) -> float:
        return timeout if timeout is not None else self._database.timeout

    def _lock_for(self, professor_id: int) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(professor_id)
            if lock is None:
                lock = self._locks[professor_id] = Lock()
            return lock

    @contextmanager
    def _exclusive(self, professor_id: int, timeout: float) -> Iterator[None]:
        lock = self._lock_for(professor_id)
        if not lock.acquire(timeout=timeout):
            raise TransientStoreFailure(f'Timed out waiting for professor {professor_id}.')
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def _unit_of_work(self, timeout: float) -> Iterator[Session]:
        db = self._database.SessionLocal()
        try:
            if self._database.dialect_name == 'postgresql':
                timeout_ms = max(1, int(timeout * 1000))
                db.execute(text(f'SET LOCAL statement_timeout = {timeout_ms}'))
                db.execute(text(f'SET LOCAL lock_timeout = {timeout_ms}'))
            yield db
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _is_foreign_key_violation(exc):
                raise InvalidParty('Referenced user does not exist.') from exc
            raise Conflict('Slot was taken by another request.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise TransientStoreFailure('Database unavailable.') from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _with_retry(self, operation: str, unit: Callable[[], T]) -> T:
        try:
            return unit()
        except TransientStoreFailure as exc:
            logger.warning('%s failed transiently, retrying once: %s', operation, exc.message)
            return unit()
