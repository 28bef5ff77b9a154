"""
Audit trail of account and upload API calls
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from medconnect.database import Base

class ActivityLog(Base):
    """One row per audited request; auth_id and role are empty for anonymous calls"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    auth_id = Column(String(64), index=True, nullable=True)
    role = Column(String(20), nullable=True)
    endpoint = Column(String(255), nullable=False)
    method = Column(String(10), nullable=False)
    status_code = Column(Integer, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    request_body = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, auth_id='{self.auth_id}', endpoint='{self.endpoint}', status={self.status_code})>"
