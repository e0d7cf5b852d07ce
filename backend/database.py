from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.core import config


Base = declarative_base()


class Database:
    """Process-wide persistence handle.

    Created once at startup, handed to whatever needs the store, and disposed
    on shutdown. Nothing in the package reaches for a module-level engine.
    """

    def __init__(self, url: str, timeout: float | None = None, **engine_kwargs) -> None:
        self.url = url
        self.timeout = timeout or config.STORE_TIMEOUT_SECONDS

        if make_url(url).get_backend_name() == "sqlite":
            connect_args = engine_kwargs.setdefault("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            connect_args.setdefault("timeout", self.timeout)

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

        self._schema_lock = Lock()
        self._schema_checked = False

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def init_schema(self) -> None:
        # Table modules register themselves on Base when imported.
        from backend.models import appointment, availability, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        """Create the lookup indexes the table definitions do not declare."""
        if self._schema_checked:
            return

        with self._schema_lock:
            if self._schema_checked:
                return

            table_names = set(inspect(self.engine).get_table_names())

            with self.engine.begin() as connection:
                if 'appointments' in table_names:
                    connection.execute(
                        text('CREATE INDEX IF NOT EXISTS idx_appointments_student ON appointments(student_id)')
                    )

                if 'availability_slots' in table_names:
                    connection.execute(
                        text(
                            'CREATE INDEX IF NOT EXISTS idx_availability_slots_professor_time '
                            'ON availability_slots(professor_id, slot_time)'
                        )
                    )

            self._schema_checked = True

    def dispose(self) -> None:
        self.engine.dispose()
