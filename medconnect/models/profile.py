"""
Profile record model, one row per provisioned account
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from medconnect.database import Base

class Profile(Base):
    """Role and display attributes keyed by the identity provider's user id"""
    __tablename__ = "users"
    
    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), index=True, nullable=False)
    role = Column(String(20), nullable=False)  # patient, doctor, labOwner
    name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    user_friendly_uid = Column(String(12), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<Profile(id='{self.id}', email='{self.email}', role='{self.role}', uid='{self.user_friendly_uid}')>"
