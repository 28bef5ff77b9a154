"""
Account provisioning and sign-in
Handles the signup sequence and its compensating cleanup
"""

from typing import Optional
import logging
import re

from medconnect.auth.identity_provider import IdentityProvider
from medconnect.auth.session import AuthSession, Role, SessionUser
from medconnect.services.friendly_id import generate_friendly_id
from medconnect.services.profile_repository import ProfileAlreadyExists, ProfileRepository
from medconnect.services.profile_resolver import ProfileResolver, email_local_part
from medconnect.utils.error_handler import (
    BackendError,
    ConsistencyError,
    DuplicateAccountError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")


def normalize_phone(phone: str) -> str:
    return phone if phone.startswith("+") else f"+{phone}"


def validate_signup(
    name: str,
    email: str,
    password: str,
    phone: str,
    role,
    confirm_password: Optional[str] = None
) -> Role:
    """Check signup input before any backend call; returns the parsed role"""
    if not all(value and str(value).strip() for value in (name, email, password, phone)):
        raise ValidationError("Please fill all fields including your name")

    if confirm_password is not None and password != confirm_password:
        raise ValidationError("Passwords do not match")

    if not PHONE_PATTERN.match(phone.strip()):
        raise ValidationError("Please enter a valid phone number")

    parsed = Role.parse(role)
    if parsed is None:
        raise ValidationError(f"Unknown role: {role}")
    return parsed


class AccountService:
    """Signup, sign-in and sign-out against the identity provider and profile table"""

    def __init__(
        self,
        identity_provider: IdentityProvider,
        profiles: ProfileRepository,
        resolver: Optional[ProfileResolver] = None
    ):
        self.identity_provider = identity_provider
        self.profiles = profiles
        self.resolver = resolver or ProfileResolver(profiles)

    async def create_account(
        self,
        name: str,
        email: str,
        password: str,
        phone: str,
        role,
        confirm_password: Optional[str] = None
    ) -> SessionUser:
        """Provision identity and profile; returns the SessionUser built from the inputs"""
        role = validate_signup(name, email, password, phone, role, confirm_password)
        name = name.strip()
        email = email.strip().lower()

        if await self.profiles.email_exists(email):
            logger.warning(f"Signup rejected, account exists for {email}")
            raise DuplicateAccountError("An account with this email already exists")

        formatted_phone = normalize_phone(phone.strip())

        auth_user = await self.identity_provider.sign_up(
            email,
            password,
            metadata={"phone": formatted_phone, "role": role.value, "name": name},
        )

        friendly_id = generate_friendly_id(role)

        try:
            await self.profiles.create(
                user_id=auth_user.id,
                email=email,
                role=role.value,
                phone=formatted_phone,
                friendly_id=friendly_id,
                name=name,
            )
        except ProfileAlreadyExists:
            logger.info(f"Profile for {auth_user.id} already provisioned")
        except BackendError:
            await self._remove_orphaned_identity(auth_user.id)
            raise

        logger.info(f"Provisioned {role.value} account {auth_user.id} ({friendly_id})")
        return SessionUser(
            auth_id=auth_user.id,
            email=email,
            role=role,
            display_name=name or email_local_part(email),
            friendly_id=friendly_id,
        )

    async def _remove_orphaned_identity(self, user_id: str) -> None:
        try:
            await self.identity_provider.delete_user(user_id)
            logger.info(f"Rolled back auth identity {user_id} after profile failure")
        except Exception as e:
            error = ConsistencyError(f"Orphaned auth identity {user_id}: {e}", e)
            logger.error(str(error), extra={"error_code": error.error_code, "auth_id": user_id})

    async def sign_in(self, email: str, password: str) -> tuple[AuthSession, SessionUser]:
        """Password sign-in followed by profile resolution"""
        if not email or not email.strip() or not password:
            raise ValidationError("Please enter email and password")

        session = await self.identity_provider.sign_in_with_password(email, password)
        user = await self.resolver.resolve(session)
        return session, user

    async def sign_out(self) -> None:
        await self.identity_provider.sign_out()
