"""
Authentication identity model (credentials plus signup metadata)
"""

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from medconnect.database import Base

class AuthIdentity(Base):
    """Credentials held by the identity provider"""
    __tablename__ = "auth_identities"
    
    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    user_metadata = Column(JSON, nullable=False, default=dict)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<AuthIdentity(id='{self.id}', email='{self.email}')>"
