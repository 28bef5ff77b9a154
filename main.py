"""
MedConnect - Account, Session and Test Result API
Role-based signup, profile resolution and lab result uploads for patients, doctors and lab owners
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
import uvicorn
from contextlib import asynccontextmanager
import logging
from datetime import datetime

from medconnect.config import RATE_LIMIT_ENABLED
from medconnect.database import engine, Base, get_db, check_database_connection
from medconnect.models import activity_log, appointment, auth_identity, medical_record, profile, test_request  # noqa: F401 - register tables
from medconnect.routers import appointments, auth, medical_records, test_requests, uploads
from medconnect.services.activity_logger import ActivityLogger
from medconnect.utils.error_handler import ErrorContext, MedConnectError, medconnect_exception_handler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Rate limiting
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("Starting MedConnect API...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    try:
        await uploads.get_storage_service().ensure_bucket()
        logger.info("Storage bucket verified")
    except MedConnectError as e:
        logger.warning(f"Object storage unavailable at startup: {e.message}")

    yield

    logger.info("Shutting down MedConnect API...")

app = FastAPI(
    title="MedConnect API",
    description="Account provisioning, session resolution and test result uploads for patients, doctors and lab owners",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(MedConnectError, medconnect_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(test_requests.router, prefix="/api/v1/test-requests", tags=["test requests"])
app.include_router(uploads.router, prefix="/api/v1/uploads", tags=["uploads"])
app.include_router(medical_records.router, prefix="/api/v1/medical-records", tags=["medical records"])
app.include_router(appointments.router, prefix="/api/v1/appointments", tags=["appointments"])

@app.get("/")
@limiter.limit("10/minute")
async def root(request: Request):
    """Root endpoint with API information - publicly accessible"""
    return {
        "message": "MedConnect API",
        "version": "1.0.0",
        "docs": "/docs",
        "timestamp": datetime.utcnow().isoformat()
    }

@app.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Health check endpoint, including database connectivity"""
    database_ok = check_database_connection(db)
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "unreachable",
            "timestamp": datetime.utcnow().isoformat()
        }
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unexpected failures get the standard error body plus an audit row"""
    context = ErrorContext(request)
    logger.error(
        f"Unhandled exception {context.request_id}: {type(exc).__name__} in {context.method} {context.endpoint}",
        extra={"request_id": context.request_id, "client_ip": context.client_ip},
        exc_info=True
    )

    db = next(get_db())
    try:
        await ActivityLogger(db).log_activity(
            endpoint=context.endpoint,
            method=context.method,
            status_code=500,
            ip_address=context.client_ip,
            error_message=f"[{context.request_id}] {type(exc).__name__}: {exc}"
        )
    finally:
        db.close()

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": context.request_id,
                "timestamp": context.timestamp.isoformat(),
                "endpoint": context.endpoint,
                "method": context.method
            }
        }
    )

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
