"""
Authentication endpoints for signup, login, logout and session lookup
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
import logging

from medconnect.config import ACCESS_TOKEN_EXPIRE_MINUTES, RATE_LIMIT_ENABLED
from medconnect.database import get_db
from medconnect.schemas.account import (
    SignupRequest, LoginRequest, SessionUserResponse, SessionResponse, TokenResponse
)
from medconnect.auth.auth_handler import get_current_session, get_current_user
from medconnect.auth.identity_provider import IdentityProvider
from medconnect.auth.session import AuthSession, SessionUser
from medconnect.services.account_service import AccountService
from medconnect.services.activity_logger import ActivityLogger
from medconnect.services.navigation import screens_for, section_for_role
from medconnect.services.profile_repository import ProfileRepository
from medconnect.utils.error_handler import AuthError, MedConnectError, ValidationError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()

def _session_response(user: SessionUser) -> dict:
    section = section_for_role(user.role)
    return {
        "user": SessionUserResponse.from_session_user(user),
        "active_section": section.value,
        "screens": list(screens_for(section)),
    }

@router.post("/signup", response_model=SessionUserResponse, status_code=201)
@limiter.limit("5/minute")  # Strict limit to prevent spam registrations
async def signup(
    request: Request,
    signup_data: SignupRequest,
    db: Session = Depends(get_db)
):
    """Register a new patient, doctor or lab owner account"""
    activity_logger = ActivityLogger(db)
    account_service = AccountService(IdentityProvider(db), ProfileRepository(db))
    try:
        user = await account_service.create_account(
            name=signup_data.name,
            email=signup_data.email,
            password=signup_data.password,
            phone=signup_data.phone,
            role=signup_data.role,
            confirm_password=signup_data.confirm_password
        )

        await activity_logger.log_request(request, 201, user=user)
        logger.info(f"New {user.role.value} account registered: {user.friendly_id}")
        return SessionUserResponse.from_session_user(user)

    except HTTPException:
        raise
    except MedConnectError as e:
        await activity_logger.log_request(request, e.status_code, error_message=e.message)
        raise
    except Exception as e:
        logger.error(f"Signup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user account"
        )

@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")  # Prevent brute force attacks
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Authenticate with email and password and return an access token"""
    activity_logger = ActivityLogger(db)
    account_service = AccountService(IdentityProvider(db), ProfileRepository(db))
    try:
        session, user = await account_service.sign_in(login_data.email, login_data.password)

    except HTTPException:
        raise
    except (AuthError, ValidationError):
        await activity_logger.log_request(
            request, 401, error_message=f"Failed login attempt for: {login_data.email}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    except MedConnectError:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )

    await activity_logger.log_request(request, 200, user=user)
    return TokenResponse(
        access_token=session.access_token,
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **_session_response(user)
    )

@router.get("/session", response_model=SessionResponse)
@limiter.limit("30/minute")
async def get_session(
    request: Request,
    current_user: SessionUser = Depends(get_current_user)
):
    """Resolved user for the bearer token plus the navigation section it unlocks"""
    return SessionResponse(**_session_response(current_user))

@router.post("/logout")
@limiter.limit("30/minute")
async def logout(
    request: Request,
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Logout user (client should discard token)"""
    activity_logger = ActivityLogger(db)
    await activity_logger.log_request(request, 200)

    logger.info(f"User logged out: {session.user.id}")
    return {"message": "Successfully logged out"}
