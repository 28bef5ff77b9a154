"""
Activity logging for account and upload endpoints
Failures here never break the calling request
"""

from fastapi import Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import json
import logging

from medconnect.auth.session import SessionUser
from medconnect.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

# Never persisted with an activity record
SENSITIVE_FIELDS = {"password", "confirm_password", "access_token"}

class ActivityLogger:
    """Persists one ActivityLog row per audited request"""

    def __init__(self, db: Session):
        self.db = db

    async def log_request(
        self,
        request: Request,
        status_code: int,
        request_body: Optional[dict] = None,
        error_message: Optional[str] = None,
        user: Optional[SessionUser] = None
    ) -> Optional[ActivityLog]:
        """Log an activity using the endpoint, method and client details of a request"""
        return await self.log_activity(
            endpoint=str(request.url.path),
            method=request.method,
            status_code=status_code,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            request_body=request_body,
            error_message=error_message,
            auth_id=user.auth_id if user else None,
            role=user.role.value if user else None
        )

    async def log_activity(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_body: Optional[dict] = None,
        error_message: Optional[str] = None,
        auth_id: Optional[str] = None,
        role: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """Log an activity to the database"""
        request_body_str = None
        if request_body:
            redacted = {
                key: ("***REDACTED***" if key in SENSITIVE_FIELDS else value)
                for key, value in request_body.items()
            }
            try:
                request_body_str = json.dumps(redacted)
            except (TypeError, ValueError):
                request_body_str = str(redacted)

        try:
            activity_log = ActivityLog(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                ip_address=ip_address,
                user_agent=user_agent,
                request_body=request_body_str,
                error_message=error_message,
                auth_id=auth_id,
                role=role
            )

            self.db.add(activity_log)
            self.db.commit()
            self.db.refresh(activity_log)
            return activity_log

        except SQLAlchemyError as e:
            logger.error(f"Failed to log activity: {e}")
            self.db.rollback()
            return None
