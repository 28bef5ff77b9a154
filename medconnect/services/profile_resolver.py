"""
Resolves an authenticated session into a SessionUser

Role precedence, applied the same way everywhere a session is resolved:
    1. profile row keyed by the identity provider id
    2. profile row matching the session email
    3. role stored in the session's signup metadata
    4. role implied by a legacy PT/DR/LB prefix on the identity id
    5. patient
"""

from typing import Optional
import logging

from medconnect.auth.session import AuthSession, Role, SessionUser
from medconnect.services.profile_repository import ProfileRepository
from medconnect.utils.error_handler import AuthError

logger = logging.getLogger(__name__)

LEGACY_ID_PREFIXES = {
    "LB": Role.LAB_OWNER,
    "DR": Role.DOCTOR,
    "PT": Role.PATIENT,
}


def infer_role_from_id(user_id: str) -> Optional[Role]:
    """Role implied by the first two characters of a legacy identity id"""
    return LEGACY_ID_PREFIXES.get((user_id or "")[:2])


def email_local_part(email: str) -> str:
    return email.split("@")[0]


class ProfileResolver:
    """Ordered fallback chain from profile lookups down to a default role"""

    def __init__(self, repository: ProfileRepository):
        self.repository = repository

    async def resolve(self, session: Optional[AuthSession]) -> SessionUser:
        """Build the SessionUser for a session; raises AuthError only when there is no session or email"""
        if session is None or session.user is None or not session.user.id:
            raise AuthError("No active session")

        user = session.user
        if not user.email:
            raise AuthError("Session has no email address")

        # A row whose role is unusable still supplies the name and friendly id
        partial = None
        lookup = await self.repository.get_by_id(user.id)
        if lookup.found:
            resolved = self._from_profile(session, lookup.record)
            if resolved is not None:
                return resolved
            partial = lookup.record
        logger.info(f"No usable profile by id for {user.id}, trying email")

        lookup = await self.repository.get_by_email(user.email)
        if lookup.found:
            resolved = self._from_profile(session, lookup.record)
            if resolved is not None:
                return resolved
            partial = partial or lookup.record

        return self._fallback(session, partial)

    @staticmethod
    def _from_profile(session: AuthSession, profile) -> Optional[SessionUser]:
        user = session.user
        role = Role.parse(profile.role)
        if role is None:
            logger.warning(f"Profile {profile.id} for {user.id} carries unknown role {profile.role!r}")
            return None
        return SessionUser(
            auth_id=user.id,
            email=user.email,
            role=role,
            display_name=profile.name or email_local_part(user.email),
            friendly_id=profile.user_friendly_uid or "",
        )

    def _fallback(self, session: AuthSession, partial=None) -> SessionUser:
        user = session.user
        metadata = user.user_metadata or {}

        role = Role.parse(metadata.get("role"))
        if role is not None:
            logger.warning(f"Using auth metadata fallback for user {user.id}")
        else:
            role = infer_role_from_id(user.id)
            if role is not None:
                logger.warning(f"Inferred role {role.value} from id prefix for user {user.id}")
            else:
                role = Role.PATIENT
                logger.warning(f"No role source for user {user.id}, defaulting to patient")

        name = partial.name if partial is not None else None
        friendly_id = partial.user_friendly_uid if partial is not None else None
        return SessionUser(
            auth_id=user.id,
            email=user.email,
            role=role,
            display_name=name or metadata.get("name") or email_local_part(user.email),
            friendly_id=friendly_id or "",
        )
