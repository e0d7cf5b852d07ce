import itertools

import pytest

from backend.database import Database
from backend.models.user import Role, User
from backend.services.reservation_engine import ReservationEngine

_emails = itertools.count(1)


@pytest.fixture
def database():
    database = Database('sqlite:///:memory:', timeout=1.0)
    database.init_schema()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def engine(database):
    return ReservationEngine(database, verify_student_identity=True)


@pytest.fixture
def make_user(database):
    def _make_user(role: Role, name: str = 'Test User') -> int:
        with database.session() as db:
            user = User(
                email=f'{role.value}{next(_emails)}@example.edu',
                name=name,
                hashed_password='',
                role=role.value,
            )
            db.add(user)
            db.commit()
            return user.id

    return _make_user


@pytest.fixture
def professor_id(make_user):
    return make_user(Role.PROFESSOR, name='Prof. Ada')


@pytest.fixture
def student_id(make_user):
    return make_user(Role.STUDENT, name='Sam Student')
