"""
Identity provider for MedConnect
Owns credentials, issues sessions and notifies subscribers of sign-in/sign-out
"""

from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional
import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from medconnect.models.auth_identity import AuthIdentity
from medconnect.auth.auth_handler import AuthHandler
from medconnect.auth.session import AuthSession, AuthUser
from medconnect.utils.error_handler import AuthError, BackendError

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]


class Subscription:
    """Handle returned by on_auth_state_change"""

    def __init__(self, provider: "IdentityProvider", callback: AuthListener):
        self._provider = provider
        self.callback = callback

    def unsubscribe(self) -> None:
        self._provider._remove_listener(self.callback)


class IdentityProvider:
    """Sign-up, password sign-in, sign-out and session events over the auth_identities table"""

    def __init__(self, db: Session, auth_handler: Optional[AuthHandler] = None):
        self.db = db
        self.auth_handler = auth_handler or AuthHandler()
        self._current_session: Optional[AuthSession] = None
        self._listeners: list[AuthListener] = []

    @staticmethod
    def _to_user(identity: AuthIdentity) -> AuthUser:
        return AuthUser(
            id=identity.id,
            email=identity.email,
            user_metadata=dict(identity.user_metadata or {}),
        )

    async def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> AuthUser:
        """Create an authentication identity. Does not sign the user in."""
        email = email.strip().lower()
        try:
            existing = self.db.query(AuthIdentity).filter(AuthIdentity.email == email).first()
            if existing:
                raise AuthError("User already registered")

            identity = AuthIdentity(
                id=str(uuid.uuid4()),
                email=email,
                hashed_password=self.auth_handler.get_password_hash(password),
                user_metadata=dict(metadata or {}),
            )
            self.db.add(identity)
            self.db.commit()
            self.db.refresh(identity)

            logger.info(f"Created auth identity {identity.id}")
            return self._to_user(identity)

        except AuthError:
            raise
        except IntegrityError as e:
            self.db.rollback()
            raise AuthError("User already registered", e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create auth identity: {e}")
            raise BackendError(f"Failed to create auth identity: {str(e)}", e)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Verify credentials, open a session and emit SIGNED_IN"""
        email = (email or "").strip().lower()
        try:
            identity = self.db.query(AuthIdentity).filter(AuthIdentity.email == email).first()
        except SQLAlchemyError as e:
            logger.error(f"Sign-in lookup failed: {e}")
            raise BackendError(f"Sign-in failed: {str(e)}", e)

        if not identity or not self.auth_handler.verify_password(password, identity.hashed_password):
            logger.warning(f"Failed sign-in attempt for: {email}")
            raise AuthError("Invalid login credentials")

        try:
            identity.last_sign_in_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Could not record sign-in time for {identity.id}: {e}")

        user = self._to_user(identity)
        session = AuthSession(user=user, access_token=self.auth_handler.create_access_token(user))
        self._current_session = session

        logger.info(f"Signed in auth identity {identity.id}")
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        """Drop the live session and emit SIGNED_OUT"""
        self._current_session = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> Optional[AuthSession]:
        """The live session, if any"""
        return self._current_session

    def restore_session(self, access_token: str) -> AuthSession:
        """Adopt a previously issued token as the live session without emitting an event"""
        session = self.auth_handler.verify_token(access_token)
        self._current_session = session
        return session

    async def delete_user(self, user_id: str) -> bool:
        """Admin delete of an authentication identity"""
        try:
            identity = self.db.query(AuthIdentity).filter(AuthIdentity.id == user_id).first()
            if not identity:
                return False
            self.db.delete(identity)
            self.db.commit()
            logger.info(f"Deleted auth identity {user_id}")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete auth identity {user_id}: {e}")
            raise BackendError(f"Failed to delete auth identity: {str(e)}", e)

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        """Register an async callback for SIGNED_IN / SIGNED_OUT"""
        self._listeners.append(callback)
        return Subscription(self, callback)

    def _remove_listener(self, callback: AuthListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception as e:
                logger.error(f"Auth listener failed on {event.value}: {e}", exc_info=True)
