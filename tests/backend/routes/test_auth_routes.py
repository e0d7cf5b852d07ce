import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.auth import jwt_handler
from backend.auth.principal import Principal
from backend.models.user import Role, User
from backend.routes.auth_routes import LoginRequest, SignupRequest, login, me, signup


def _signup(db, email: str = 'ada@example.edu', role: Role = Role.PROFESSOR):
    return signup(
        data=SignupRequest(name='Ada', email=email, password='correct horse', role=role),
        db=db,
    )


def test_signup_request_normalizes_email() -> None:
    request = SignupRequest(name=' Ada ', email=' ADA@Example.EDU ', password='pw', role='student')

    assert request.email == 'ada@example.edu'
    assert request.name == 'Ada'
    assert request.role is Role.STUDENT


def test_signup_request_rejects_unknown_role() -> None:
    with pytest.raises(ValidationError):
        SignupRequest(name='Ada', email='ada@example.edu', password='pw', role='admin')


def test_signup_stores_hashed_password(database) -> None:
    with database.session() as db:
        response = _signup(db)
        user = db.get(User, response.id)

    assert response.message == 'User registered successfully'
    assert user.role == 'professor'
    assert user.hashed_password != 'correct horse'


def test_signup_rejects_duplicate_email(database) -> None:
    with database.session() as db:
        _signup(db)

        with pytest.raises(HTTPException) as exception_info:
            _signup(db, role=Role.STUDENT)

    assert exception_info.value.status_code == 409


def test_login_returns_token_carrying_id_and_role(database) -> None:
    with database.session() as db:
        user_id = _signup(db, role=Role.STUDENT).id
        response = login(data=LoginRequest(email='ADA@example.edu', password='correct horse'), db=db)

    claims = jwt_handler.decode_access_token(response.access_token)

    assert response.token_type == 'bearer'
    assert Principal.from_claims(claims) == Principal(id=user_id, role=Role.STUDENT)


def test_login_returns_404_for_unknown_email(database) -> None:
    with database.session() as db:
        with pytest.raises(HTTPException) as exception_info:
            login(data=LoginRequest(email='nobody@example.edu', password='pw'), db=db)

    assert exception_info.value.status_code == 404


def test_login_returns_401_for_wrong_password(database) -> None:
    with database.session() as db:
        _signup(db)

        with pytest.raises(HTTPException) as exception_info:
            login(data=LoginRequest(email='ada@example.edu', password='wrong'), db=db)

    assert exception_info.value.status_code == 401


def test_me_echoes_principal() -> None:
    response = me(principal=Principal(id=7, role=Role.PROFESSOR))

    assert response.id == 7
    assert response.role is Role.PROFESSOR
