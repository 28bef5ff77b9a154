"""
Upload endpoints: lab test results and patient or doctor documents
"""

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from functools import lru_cache
from typing import Optional
import io
import logging

from medconnect.config import MAX_UPLOAD_BYTES, RATE_LIMIT_ENABLED
from medconnect.database import get_db
from medconnect.auth.auth_handler import get_current_user, lab_owner_required, patient_scope
from medconnect.auth.session import Role, SessionUser
from medconnect.models.test_request import TestResult
from medconnect.schemas.medical_record import MedicalFileResponse
from medconnect.schemas.test_request import UploadResultResponse
from medconnect.services.activity_logger import ActivityLogger
from medconnect.services.medical_record_service import MedicalRecordService
from medconnect.services.storage import StorageService
from medconnect.services.upload_coordinator import DEFAULT_FILE_DESCRIPTION, UploadCoordinator
from medconnect.utils.error_handler import MedConnectError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()

@lru_cache(maxsize=1)
def get_storage_service() -> StorageService:
    """Shared storage client"""
    return StorageService()

async def _read_upload(file: UploadFile, folder: str) -> bytes:
    """Reject nameless, empty or oversized files before touching storage"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name is required")
    if "/" in folder:
        raise HTTPException(status_code=400, detail='Category cannot contain "/"')

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size must be less than 10MB")
    return content

@router.post("/test-results", response_model=UploadResultResponse, status_code=201)
@limiter.limit("5/minute")
async def upload_test_result(
    request: Request,
    patient_id: str = Form(..., description="Patient the result belongs to"),
    category: str = Form("Test Result", description="Storage category"),
    file: UploadFile = File(..., description="Result document"),
    current_user: SessionUser = Depends(lab_owner_required),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """Upload a result file and close the patient's pending test request"""
    content = await _read_upload(file, category)

    activity_logger = ActivityLogger(db)
    coordinator = UploadCoordinator(db, storage)
    try:
        result_id = await coordinator.upload_and_link(
            patient_id, io.BytesIO(content), file.filename, category, lab_id=current_user.auth_id
        )
    except MedConnectError as e:
        await activity_logger.log_request(request, e.status_code, error_message=e.message, user=current_user)
        raise

    result = db.query(TestResult).filter(TestResult.id == result_id).first()
    await activity_logger.log_request(request, 201, user=current_user)

    logger.info(f"Lab {current_user.auth_id} uploaded result {result_id} for patient {patient_id}")
    return UploadResultResponse(result_id=result_id, file_url=result.file_url)

@router.post("/files", response_model=MedicalFileResponse, status_code=201)
@limiter.limit("10/minute")
async def upload_medical_file(
    request: Request,
    patient_id: Optional[str] = Form(None, description="Patient the file belongs to; patients upload for themselves"),
    description: str = Form(DEFAULT_FILE_DESCRIPTION, description="Folder the file is filed under"),
    file: UploadFile = File(..., description="Medical document"),
    current_user: SessionUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """Upload a document for a patient (patients and doctors)"""
    if current_user.role == Role.LAB_OWNER:
        raise HTTPException(status_code=403, detail="Lab owners upload through /test-results")
    subject_id = patient_scope(current_user, patient_id)
    content = await _read_upload(file, description)

    activity_logger = ActivityLogger(db)
    coordinator = UploadCoordinator(db, storage)
    try:
        medical_file = await coordinator.upload_medical_file(
            subject_id, io.BytesIO(content), file.filename, current_user.auth_id, description
        )
    except MedConnectError as e:
        await activity_logger.log_request(request, e.status_code, error_message=e.message, user=current_user)
        raise

    await activity_logger.log_request(request, 201, user=current_user)
    return MedicalFileResponse.model_validate(medical_file)

@router.get("/files", response_model=list[MedicalFileResponse])
@limiter.limit("30/minute")
async def list_my_files(
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Files the caller uploaded, newest first"""
    service = MedicalRecordService(db)
    files = await service.get_files_uploaded_by(current_user.auth_id)
    return [MedicalFileResponse.model_validate(f) for f in files]
