"""
Medical record endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import Optional
import logging

from medconnect.config import RATE_LIMIT_ENABLED
from medconnect.database import get_db
from medconnect.auth.auth_handler import clinician_required, get_current_user, patient_scope
from medconnect.auth.session import Role, SessionUser
from medconnect.schemas.medical_record import MedicalRecordCreate, MedicalRecordResponse
from medconnect.services.medical_record_service import MedicalRecordService

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()

@router.post("", response_model=MedicalRecordResponse, status_code=201)
@limiter.limit("20/minute")
async def create_medical_record(
    request: Request,
    record: MedicalRecordCreate,
    current_user: SessionUser = Depends(clinician_required),
    db: Session = Depends(get_db)
):
    """Add an entry to a patient's history (doctors and lab owners)"""
    service = MedicalRecordService(db)
    created = await service.create_record(record, doctor_id=current_user.auth_id)
    return MedicalRecordResponse.model_validate(created)

@router.get("", response_model=list[MedicalRecordResponse])
@limiter.limit("30/minute")
async def list_medical_records(
    request: Request,
    patient_id: Optional[str] = Query(None, description="Patient to list records for"),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """A patient's records, newest first"""
    service = MedicalRecordService(db)
    records = await service.get_records(patient_scope(current_user, patient_id))
    return [MedicalRecordResponse.model_validate(r) for r in records]

@router.get("/{record_id}", response_model=MedicalRecordResponse)
@limiter.limit("30/minute")
async def get_medical_record(
    request: Request,
    record_id: int,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a specific record"""
    service = MedicalRecordService(db)
    record = await service.get_record(record_id)

    if current_user.role == Role.PATIENT and record.patient_id != current_user.auth_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
    return MedicalRecordResponse.model_validate(record)
