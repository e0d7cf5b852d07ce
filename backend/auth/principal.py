"""The authenticated actor behind a request."""

from dataclasses import dataclass
from typing import Any, Mapping

from backend.models.user import Role


@dataclass(frozen=True)
class Principal:
    id: int
    role: Role

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """Build a principal from verified token claims.

        Raises ``ValueError`` when the subject is not a user id or the role is
        not one the service knows.
        """
        subject = claims.get("sub")
        if subject is None or not str(subject).isdigit():
            raise ValueError("Token subject is not a user id.")

        try:
            role = Role(claims.get("role"))
        except ValueError as exc:
            raise ValueError("Token carries an unknown role.") from exc

        return cls(id=int(subject), role=role)

    def has_role(self, role: Role) -> bool:
        return self.role is role
