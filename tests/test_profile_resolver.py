"""
Unit tests for profile resolution and its fallback order
"""

import pytest

from medconnect.auth.session import AuthSession, AuthUser, Role
from medconnect.models.profile import Profile
from medconnect.services.profile_repository import ProfileLookup, ProfileRepository
from medconnect.services.profile_resolver import ProfileResolver, infer_role_from_id
from medconnect.utils.error_handler import AuthError


def make_session(user_id="auth-1", email="sam@example.com", metadata=None):
    return AuthSession(user=AuthUser(id=user_id, email=email, user_metadata=metadata or {}))


def add_profile(db, **fields):
    row = Profile(**fields)
    db.add(row)
    db.commit()
    return row


class UnreachableRepository:
    """Every lookup fails as if the profile table were down"""

    def __init__(self):
        self.calls = []

    async def get_by_id(self, user_id):
        self.calls.append(("id", user_id))
        return ProfileLookup(found=False, error=ConnectionError("network down"))

    async def get_by_email(self, email):
        self.calls.append(("email", email))
        return ProfileLookup(found=False, error=ConnectionError("network down"))


class TestResolutionOrder:
    """Each fallback tier of the resolver"""

    @pytest.mark.asyncio
    async def test_profile_found_by_id(self, db):
        add_profile(db, id="auth-1", email="sam@example.com", role="doctor",
                    name="Dr. Sam", user_friendly_uid="DR1234567890")

        user = await ProfileResolver(ProfileRepository(db)).resolve(make_session())

        assert user.role == Role.DOCTOR
        assert user.display_name == "Dr. Sam"
        assert user.friendly_id == "DR1234567890"
        assert user.auth_id == "auth-1"
        assert user.email == "sam@example.com"

    @pytest.mark.asyncio
    async def test_profile_found_by_email_when_id_misses(self, db):
        add_profile(db, id="legacy-row", email="sam@example.com", role="labOwner",
                    name="Sam's Lab", user_friendly_uid="LB5550001111")

        user = await ProfileResolver(ProfileRepository(db)).resolve(make_session())

        assert user.role == Role.LAB_OWNER
        assert user.display_name == "Sam's Lab"
        assert user.friendly_id == "LB5550001111"
        assert user.auth_id == "auth-1"

    @pytest.mark.asyncio
    async def test_metadata_fallback(self, db):
        session = make_session(metadata={"role": "doctor"})

        user = await ProfileResolver(ProfileRepository(db)).resolve(session)

        assert user.role == Role.DOCTOR
        assert user.display_name == "sam"
        assert user.friendly_id == ""

    @pytest.mark.asyncio
    async def test_metadata_name_used_for_display(self, db):
        session = make_session(metadata={"role": "patient", "name": "Sam Lee"})
        user = await ProfileResolver(ProfileRepository(db)).resolve(session)
        assert user.display_name == "Sam Lee"

    @pytest.mark.asyncio
    async def test_nothing_known_defaults_to_patient(self, db):
        user = await ProfileResolver(ProfileRepository(db)).resolve(make_session())

        assert user.role == Role.PATIENT
        assert user.display_name == "sam"
        assert user.friendly_id == ""

    @pytest.mark.asyncio
    async def test_legacy_prefix_used_after_metadata(self, db):
        session = make_session(user_id="DR0000000001")
        user = await ProfileResolver(ProfileRepository(db)).resolve(session)
        assert user.role == Role.DOCTOR

        session = make_session(user_id="LB0000000001", metadata={"role": "patient"})
        user = await ProfileResolver(ProfileRepository(db)).resolve(session)
        assert user.role == Role.PATIENT

    @pytest.mark.asyncio
    async def test_ambiguous_email_match_falls_through(self, db):
        add_profile(db, id="row-a", email="sam@example.com", role="doctor")
        add_profile(db, id="row-b", email="sam@example.com", role="labOwner")

        user = await ProfileResolver(ProfileRepository(db)).resolve(make_session())

        assert user.role == Role.PATIENT

    @pytest.mark.asyncio
    async def test_unknown_profile_role_falls_through(self, db):
        add_profile(db, id="auth-1", email="sam@example.com", role="dco")
        session = make_session(metadata={"role": "labOwner"})

        user = await ProfileResolver(ProfileRepository(db)).resolve(session)

        assert user.role == Role.LAB_OWNER

    @pytest.mark.asyncio
    async def test_unknown_profile_role_keeps_name_and_friendly_id(self, db):
        add_profile(db, id="auth-1", email="sam@example.com", role="dco",
                    name="Dr. Sam", user_friendly_uid="DR1234567890")
        session = make_session(metadata={"role": "doctor", "name": "Sam"})

        user = await ProfileResolver(ProfileRepository(db)).resolve(session)

        assert user.role == Role.DOCTOR
        assert user.display_name == "Dr. Sam"
        assert user.friendly_id == "DR1234567890"

    @pytest.mark.asyncio
    async def test_unknown_role_by_id_tries_email_row(self, db):
        add_profile(db, id="auth-1", email="other@example.com", role="dco")
        add_profile(db, id="legacy-row", email="sam@example.com", role="labOwner",
                    name="Sam's Lab", user_friendly_uid="LB5550001111")

        user = await ProfileResolver(ProfileRepository(db)).resolve(make_session())

        assert user.role == Role.LAB_OWNER
        assert user.friendly_id == "LB5550001111"

        assert user.role == Role.LAB_OWNER

class TestResolutionFailures:
    """Backend failures fall back, missing sessions are auth errors"""

    @pytest.mark.asyncio
    async def test_unreachable_profile_table_still_resolves(self):
        repository = UnreachableRepository()
        session = make_session(metadata={"role": "labOwner"})

        user = await ProfileResolver(repository).resolve(session)

        assert user.role == Role.LAB_OWNER
        assert repository.calls == [("id", "auth-1"), ("email", "sam@example.com")]

    @pytest.mark.asyncio
    async def test_missing_session_is_auth_error(self, db):
        with pytest.raises(AuthError):
            await ProfileResolver(ProfileRepository(db)).resolve(None)

    @pytest.mark.asyncio
    async def test_missing_email_is_auth_error(self, db):
        with pytest.raises(AuthError):
            await ProfileResolver(ProfileRepository(db)).resolve(make_session(email=None))

    @pytest.mark.asyncio
    async def test_resolver_never_writes(self, db):
        await ProfileResolver(ProfileRepository(db)).resolve(make_session(metadata={"role": "doctor"}))
        assert db.query(Profile).count() == 0


@pytest.mark.parametrize("user_id, role", [
    ("LB123", Role.LAB_OWNER),
    ("DR123", Role.DOCTOR),
    ("PT123", Role.PATIENT),
    ("3f2a-uuid", None),
    ("", None),
])
def test_infer_role_from_id(user_id, role):
    assert infer_role_from_id(user_id) == role
