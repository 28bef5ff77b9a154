"""
Session types shared by the identity provider, profile resolver and session gate
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    LAB_OWNER = "labOwner"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        """Return the matching role, or None for anything unrecognised"""
        if isinstance(value, cls):
            return value
        for role in cls:
            if role.value == value:
                return role
        return None


@dataclass(frozen=True)
class AuthUser:
    """User attached to an identity provider session"""
    id: str
    email: Optional[str]
    user_metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AuthSession:
    """A live identity provider session"""
    user: AuthUser
    access_token: str = ""


@dataclass(frozen=True)
class SessionUser:
    """Resolved identity of the signed-in user. Replaced wholesale, never mutated."""
    auth_id: str
    email: str
    role: Role
    display_name: str
    friendly_id: str = ""

    def to_dict(self) -> dict:
        return {
            "auth_id": self.auth_id,
            "email": self.email,
            "role": self.role.value,
            "display_name": self.display_name,
            "friendly_id": self.friendly_id,
        }
