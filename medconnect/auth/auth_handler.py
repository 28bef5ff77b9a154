"""
Password hashing, session tokens and role checks for MedConnect
"""

from datetime import datetime, timedelta
from typing import Optional
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from medconnect.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from medconnect.database import get_db
from medconnect.auth.session import AuthSession, AuthUser, Role, SessionUser
from medconnect.services.profile_repository import ProfileRepository
from medconnect.services.profile_resolver import ProfileResolver
from medconnect.utils.error_handler import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=4)
security = HTTPBearer()

class AuthHandler:
    """Handles credential hashing and session token encoding"""

    def __init__(self):
        self.pwd_context = pwd_context

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        """Hash a password"""
        return self.pwd_context.hash(password)

    def create_access_token(self, user: AuthUser, expires_delta: Optional[timedelta] = None) -> str:
        """Encode an identity provider user into a JWT access token"""
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

        to_encode = {
            "sub": user.id,
            "email": user.email,
            "user_metadata": dict(user.user_metadata or {}),
            "exp": expire,
        }
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> AuthSession:
        """Decode a JWT access token back into a session"""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError as e:
            raise AuthError("Could not validate credentials", e)

        user_id = payload.get("sub")
        if not user_id:
            raise AuthError("Could not validate credentials")

        user = AuthUser(
            id=user_id,
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
        )
        return AuthSession(user=user, access_token=token)

auth_handler = AuthHandler()

def get_current_session(credentials: HTTPAuthorizationCredentials = Depends(security)) -> AuthSession:
    """Dependency returning the session carried by the bearer token"""
    try:
        return auth_handler.verify_token(credentials.credentials)
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

async def get_current_user(
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db)
) -> SessionUser:
    """Dependency resolving the bearer token's session into a SessionUser"""
    resolver = ProfileResolver(ProfileRepository(db))
    try:
        return await resolver.resolve(session)
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

# Role-based access control
class RoleChecker:
    """Check user roles for authorization"""

    def __init__(self, allowed_roles: list):
        self.allowed_roles = allowed_roles

    def __call__(self, user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted"
            )
        return user

# Common role checkers
lab_owner_required = RoleChecker([Role.LAB_OWNER])
clinician_required = RoleChecker([Role.DOCTOR, Role.LAB_OWNER])

def patient_scope(current_user: SessionUser, patient_id: Optional[str]) -> str:
    """Patients only reach their own data; doctors and lab owners must name a patient"""
    if current_user.role == Role.PATIENT:
        if patient_id and patient_id != current_user.auth_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
        return current_user.auth_id
    if not patient_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="patient_id is required")
    return patient_id
