"""
Profile table access
Lookups return a ProfileLookup instead of raising so callers can fall back in order
"""

from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from medconnect.models.profile import Profile
from medconnect.utils.error_handler import BackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileLookup:
    """Outcome of a single profile query"""
    found: bool
    record: Optional[Profile] = None
    error: Optional[Exception] = None


class ProfileAlreadyExists(BackendError):
    """The profile row for this id or email is already present"""
    error_code = "PROFILE_EXISTS"


class ProfileRepository:
    """Reads and one-time writes against the users table"""

    def __init__(self, db: Session):
        self.db = db

    def _single(self, query, label: str) -> ProfileLookup:
        try:
            rows = query.limit(2).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Profile lookup by {label} failed: {e}")
            return ProfileLookup(found=False, error=e)

        if len(rows) != 1:
            if rows:
                logger.warning(f"Profile lookup by {label} matched more than one row")
            return ProfileLookup(found=False)
        return ProfileLookup(found=True, record=rows[0])

    async def get_by_id(self, user_id: str) -> ProfileLookup:
        """Lookup keyed by the identity provider's user id"""
        return self._single(self.db.query(Profile).filter(Profile.id == user_id), "id")

    async def get_by_email(self, email: str) -> ProfileLookup:
        """Secondary lookup by email address"""
        return self._single(
            self.db.query(Profile).filter(Profile.email == email.strip().lower()), "email"
        )

    async def email_exists(self, email: str) -> bool:
        """Whether any profile already uses this email. Query errors propagate."""
        try:
            return self.db.query(Profile.id).filter(
                Profile.email == email.strip().lower()
            ).first() is not None
        except SQLAlchemyError as e:
            self.db.rollback()
            raise BackendError(f"Failed to check existing accounts: {str(e)}", e)

    async def create(
        self,
        user_id: str,
        email: str,
        role: str,
        phone: Optional[str],
        friendly_id: str,
        name: Optional[str] = None
    ) -> Profile:
        """Write the profile row for a freshly created identity"""
        email = email.strip().lower()
        profile = Profile(
            id=user_id,
            email=email,
            role=role,
            phone=phone,
            user_friendly_uid=friendly_id,
            name=name or email.split("@")[0],
        )
        try:
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)
            logger.info(f"Created profile {user_id} ({friendly_id})")
            return profile
        except IntegrityError as e:
            self.db.rollback()
            raise ProfileAlreadyExists("A profile with this id already exists", e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create profile {user_id}: {e}")
            raise BackendError(f"Failed to create profile: {str(e)}", e)
