"""User model definitions."""

import enum

from sqlalchemy import Column, Integer, String
from backend.database import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    PROFESSOR = "professor"


class User(Base):
    """Represents an application user. The role never changes after signup."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    hashed_password = Column(String)
    role = Column(String, nullable=False)  # student/professor

    def has_role(self, role: Role) -> bool:
        return self.role == role.value
