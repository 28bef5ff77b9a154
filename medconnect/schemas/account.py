"""
Pydantic schemas for signup, login and session responses
"""

from pydantic import BaseModel, Field, EmailStr, validator
from typing import Optional

from medconnect.auth.session import SessionUser

class SignupRequest(BaseModel):
    """Schema for creating a new account"""
    name: str = Field(..., max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Valid email address")
    password: str = Field(..., max_length=128, description="Password")
    confirm_password: Optional[str] = Field(None, description="Password confirmation")
    phone: str = Field(..., max_length=20, description="Phone number, 10-15 digits, optional leading +")
    role: str = Field("patient", description="patient, doctor or labOwner")

    @validator('email')
    def normalize_email(cls, v):
        return v.strip().lower()

class LoginRequest(BaseModel):
    """Schema for password login"""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @validator('email')
    def validate_email(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError('Email is required')
        return v

class SessionUserResponse(BaseModel):
    """The resolved signed-in user"""
    auth_id: str
    email: str
    role: str
    display_name: str
    friendly_id: str = ""

    @classmethod
    def from_session_user(cls, user: SessionUser) -> "SessionUserResponse":
        return cls(**user.to_dict())

class SessionResponse(BaseModel):
    """Who is signed in and which section of the app they can reach"""
    user: SessionUserResponse
    active_section: str
    screens: list[str]

class TokenResponse(SessionResponse):
    """Schema for login responses"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
