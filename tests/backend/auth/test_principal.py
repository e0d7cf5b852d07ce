import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_principal, require_role
from backend.auth.passwords import hash_password, verify_password
from backend.auth.principal import Principal
from backend.models.user import Role


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_principal_from_claims_reads_id_and_role() -> None:
    principal = Principal.from_claims({'sub': '12', 'role': 'professor'})

    assert principal == Principal(id=12, role=Role.PROFESSOR)


@pytest.mark.parametrize(
    'claims',
    [
        {'role': 'student'},
        {'sub': 'ada@example.edu', 'role': 'student'},
        {'sub': '12', 'role': 'admin'},
        {'sub': '12'},
    ],
)
def test_principal_from_claims_rejects_malformed_payloads(claims: dict) -> None:
    with pytest.raises(ValueError):
        Principal.from_claims(claims)


def test_get_current_principal_decodes_valid_token() -> None:
    token = jwt_handler.create_access_token(user_id=3, role='student')

    assert get_current_principal(_credentials(token)) == Principal(id=3, role=Role.STUDENT)


def test_get_current_principal_rejects_garbage_token() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(_credentials('not-a-token'))

    assert exception_info.value.status_code == 401


def test_get_current_principal_rejects_unknown_role() -> None:
    token = jwt_handler.create_access_token(user_id=3, role='admin')

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(_credentials(token))

    assert exception_info.value.status_code == 401


def test_require_role_rejects_other_roles() -> None:
    check = require_role(Role.PROFESSOR)

    with pytest.raises(HTTPException) as exception_info:
        check(principal=Principal(id=3, role=Role.STUDENT))

    assert exception_info.value.status_code == 403
    assert check(principal=Principal(id=4, role=Role.PROFESSOR)).id == 4


def test_password_hashing_round_trip() -> None:
    hashed = hash_password('s3cret')

    assert verify_password('s3cret', hashed) is True
    assert verify_password('wrong', hashed) is False
    assert verify_password('s3cret', None) is False
    assert verify_password('s3cret', 'plain-text') is False
