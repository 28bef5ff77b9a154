"""
In-process client core for the MedConnect app

Wires the identity provider, profile resolver, session gate, account service and
upload coordinator together the way the mobile front-end does on start-up.
"""

from typing import Optional
import logging

from sqlalchemy.orm import Session

from medconnect.auth.identity_provider import AuthEvent, IdentityProvider
from medconnect.auth.session import Role, SessionUser
from medconnect.services.account_service import AccountService
from medconnect.services.profile_repository import ProfileRepository
from medconnect.services.profile_resolver import ProfileResolver
from medconnect.services.session_gate import SessionGate, SessionState
from medconnect.services.storage import StorageService
from medconnect.services.upload_coordinator import UploadCoordinator
from medconnect.utils.error_handler import AuthError, ValidationError

logger = logging.getLogger(__name__)


class MedConnectClient:
    """One signed-in user at a time, tracked by a SessionGate"""

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        self.db = db
        self.identity_provider = IdentityProvider(db)
        self.profiles = ProfileRepository(db)
        self.resolver = ProfileResolver(self.profiles)
        self.gate = SessionGate(self.resolver, self.identity_provider)
        self.gate.attach()
        self.accounts = AccountService(self.identity_provider, self.profiles, self.resolver)
        self._storage = storage

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    async def start(self, access_token: Optional[str] = None) -> SessionState:
        """Restore a persisted session if one is given, then run the gate's start-up check"""
        if access_token:
            try:
                self.identity_provider.restore_session(access_token)
            except AuthError as e:
                logger.info(f"Discarding stored session: {e}")
        return await self.gate.start()

    def stop(self) -> None:
        self.gate.stop()

    async def sign_up(
        self,
        name: str,
        email: str,
        password: str,
        phone: str,
        role,
        confirm_password: Optional[str] = None
    ) -> SessionUser:
        user = await self.accounts.create_account(name, email, password, phone, role, confirm_password)
        self.gate.accept_provisioned(user)
        return user

    async def sign_in(self, email: str, password: str) -> SessionUser:
        """Sign in; the gate picks the session up from the SIGNED_IN event"""
        if not email or not password:
            raise ValidationError("Please enter email and password")

        session = await self.identity_provider.sign_in_with_password(email, password)
        if not self.gate.attached:
            # Detached by stop(); feed the event through by hand
            await self.gate.handle_auth_event(AuthEvent.SIGNED_IN, session)
        user = self.gate.current_user
        if user is None:
            raise AuthError("Temporary issue loading your profile. Please try again.")
        return user

    async def sign_out(self) -> None:
        await self.identity_provider.sign_out()
        if not self.gate.attached:
            await self.gate.handle_auth_event(AuthEvent.SIGNED_OUT, None)

    async def upload_test_result(self, patient_id: str, file_handle, file_name: str, category: str = "Test Result") -> int:
        """Lab owner uploads a result file for one of their patients"""
        user = self.gate.current_user
        if user is None or user.role != Role.LAB_OWNER:
            raise AuthError("Only lab owners can upload test results")

        coordinator = UploadCoordinator(self.db, self.storage)
        return await coordinator.upload_and_link(
            patient_id, file_handle, file_name, category, lab_id=user.auth_id
        )
