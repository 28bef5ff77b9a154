"""
Runtime configuration for MedConnect
Values come from the environment (a .env file is loaded by main.py)
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./medconnect.db")

# Security
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Object storage (S3-compatible, MinIO)
MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "localhost:9000")
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
MINIO_USE_SSL = _env_bool("MINIO_USE_SSL", "false")
MINIO_BUCKET = os.getenv("MINIO_BUCKET", "medical-files")
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "")

# Upload limits
UPLOAD_TIMEOUT_SECONDS = float(os.getenv("UPLOAD_TIMEOUT_SECONDS", "30"))
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", "true")
