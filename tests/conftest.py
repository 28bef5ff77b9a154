"""
Shared fixtures: an in-memory SQLite database, an in-memory object store and a test client
"""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STORAGE_PUBLIC_URL", "https://files.test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medconnect.database import Base, get_db
from medconnect.models import activity_log, appointment, auth_identity, medical_record, profile, test_request  # noqa: F401
from medconnect.routers.uploads import get_storage_service
from medconnect.utils.error_handler import BackendError
from main import app

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class InMemoryStorage:
    """Object store double with the StorageService interface"""

    def __init__(self):
        self.objects = {}
        self.fail_upload = False
        self.fail_delete = False
        self.deleted = []

    async def upload(self, path, data, content_type="application/octet-stream"):
        if self.fail_upload:
            raise BackendError("Failed to upload file: storage offline")
        self.objects[path] = data
        return path

    def get_public_url(self, path):
        return f"https://files.test/medical-files/{path}"

    async def delete(self, path):
        if self.fail_delete:
            raise BackendError("Failed to delete file: storage offline")
        self.objects.pop(path, None)
        self.deleted.append(path)
        return True


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client(db, storage):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
