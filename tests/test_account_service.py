"""
Unit tests for account provisioning and sign-in
"""

import logging

import pytest

from medconnect.auth.identity_provider import IdentityProvider
from medconnect.auth.session import Role
from medconnect.models.auth_identity import AuthIdentity
from medconnect.models.profile import Profile
from medconnect.services.account_service import AccountService, normalize_phone
from medconnect.services.friendly_id import FRIENDLY_ID_PATTERN
from medconnect.services.profile_repository import ProfileAlreadyExists, ProfileRepository
from medconnect.utils.error_handler import (
    AuthError,
    BackendError,
    DuplicateAccountError,
    ValidationError,
)


def make_service(db):
    return AccountService(IdentityProvider(db), ProfileRepository(db))


class FailingProfiles(ProfileRepository):
    """Profile repository whose create step fails with a chosen error"""

    def __init__(self, db, error):
        super().__init__(db)
        self.error = error

    async def create(self, *args, **kwargs):
        raise self.error


class UndeletableProvider(IdentityProvider):
    async def delete_user(self, user_id):
        raise BackendError("admin API unavailable")


class TestCreateAccount:
    """Signup sequence"""

    @pytest.mark.asyncio
    async def test_doctor_signup(self, db):
        user = await make_service(db).create_account(
            name="Jane Doe",
            email="jane@example.com",
            password="secret123",
            phone="5551234567",
            role="doctor",
        )

        assert user.role == Role.DOCTOR
        assert user.display_name == "Jane Doe"
        assert user.email == "jane@example.com"
        assert FRIENDLY_ID_PATTERN.match(user.friendly_id)
        assert user.friendly_id.startswith("DR")

        row = db.query(Profile).filter(Profile.id == user.auth_id).one()
        assert row.role == "doctor"
        assert row.phone == "+5551234567"
        assert row.user_friendly_uid == user.friendly_id
        assert row.name == "Jane Doe"

        identity = db.query(AuthIdentity).filter(AuthIdentity.id == user.auth_id).one()
        assert identity.user_metadata["role"] == "doctor"
        assert identity.user_metadata["phone"] == "+5551234567"
        assert identity.hashed_password != "secret123"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_without_writes(self, db):
        db.add(Profile(id="existing", email="jane@example.com", role="patient"))
        db.commit()

        with pytest.raises(DuplicateAccountError):
            await make_service(db).create_account(
                "Jane Doe", "jane@example.com", "secret123", "5551234567", "doctor"
            )

        assert db.query(Profile).count() == 1
        assert db.query(AuthIdentity).count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, email, password, phone, role, confirm", [
        ("", "a@example.com", "secret123", "5551234567", "patient", None),
        ("Al", "a@example.com", "", "5551234567", "patient", None),
        ("Al", "a@example.com", "secret123", "555-123", "patient", None),
        ("Al", "a@example.com", "secret123", "12345", "patient", None),
        ("Al", "a@example.com", "secret123", "+1234567890123456", "patient", None),
        ("Al", "a@example.com", "secret123", "5551234567", "nurse", None),
        ("Al", "a@example.com", "secret123", "5551234567", "patient", "different"),
    ])
    async def test_invalid_input_makes_no_backend_calls(self, db, name, email, password, phone, role, confirm):
        with pytest.raises(ValidationError):
            await make_service(db).create_account(name, email, password, phone, role, confirm)

        assert db.query(AuthIdentity).count() == 0
        assert db.query(Profile).count() == 0

    @pytest.mark.asyncio
    async def test_profile_failure_removes_auth_identity(self, db):
        service = AccountService(IdentityProvider(db), FailingProfiles(db, BackendError("insert failed")))

        with pytest.raises(BackendError):
            await service.create_account("Al", "al@example.com", "secret123", "+15551234567", "patient")

        assert db.query(AuthIdentity).count() == 0

    @pytest.mark.asyncio
    async def test_failed_compensation_is_logged(self, db, caplog):
        service = AccountService(UndeletableProvider(db), FailingProfiles(db, BackendError("insert failed")))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(BackendError):
                await service.create_account("Al", "al@example.com", "secret123", "5551234567", "patient")

        assert db.query(AuthIdentity).count() == 1
        assert "Orphaned auth identity" in caplog.text

    @pytest.mark.asyncio
    async def test_existing_profile_counts_as_provisioned(self, db):
        service = AccountService(
            IdentityProvider(db), FailingProfiles(db, ProfileAlreadyExists("duplicate key"))
        )

        user = await service.create_account("Al", "al@example.com", "secret123", "5551234567", "labOwner")

        assert user.role == Role.LAB_OWNER
        assert db.query(AuthIdentity).count() == 1

    @pytest.mark.asyncio
    async def test_identity_provider_rejects_existing_email(self, db):
        await IdentityProvider(db).sign_up("al@example.com", "secret123", {"role": "patient"})

        with pytest.raises(AuthError):
            await make_service(db).create_account("Al", "al@example.com", "secret123", "5551234567", "patient")

        assert db.query(Profile).count() == 0


class TestSignIn:
    """Password sign-in resolves the profile"""

    @pytest.mark.asyncio
    async def test_sign_in_returns_resolved_user(self, db):
        service = make_service(db)
        created = await service.create_account("Lab One", "lab@example.com", "secret123", "5551234567", "labOwner")

        session, user = await service.sign_in("LAB@example.com", "secret123")

        assert session.access_token
        assert user == created

    @pytest.mark.asyncio
    async def test_wrong_password(self, db):
        service = make_service(db)
        await service.create_account("Lab One", "lab@example.com", "secret123", "5551234567", "labOwner")

        with pytest.raises(AuthError):
            await service.sign_in("lab@example.com", "wrong")


@pytest.mark.parametrize("raw, expected", [
    ("5551234567", "+5551234567"),
    ("+5551234567", "+5551234567"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected
