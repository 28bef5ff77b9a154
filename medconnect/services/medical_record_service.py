"""
Medical record queries
"""

import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from medconnect.models.medical_record import MedicalFile, MedicalRecord
from medconnect.schemas.medical_record import MedicalRecordCreate
from medconnect.utils.error_handler import BackendError, NotFoundError

logger = logging.getLogger(__name__)

class MedicalRecordService:
    """Create and read patient medical records and uploaded files"""

    def __init__(self, db: Session):
        self.db = db

    async def create_record(self, data: MedicalRecordCreate, doctor_id: str) -> MedicalRecord:
        try:
            record = MedicalRecord(**data.model_dump(), doctor_id=doctor_id)
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)

            logger.info(f"Created medical record {record.id} for patient {record.patient_id}")
            return record

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create medical record: {e}")
            raise BackendError(f"Failed to create medical record: {str(e)}", e)

    async def get_records(self, patient_id: str) -> list[MedicalRecord]:
        """Newest first"""
        try:
            return (
                self.db.query(MedicalRecord)
                .filter(MedicalRecord.patient_id == patient_id)
                .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to get medical records for {patient_id}: {e}")
            raise BackendError(f"Failed to retrieve medical records: {str(e)}", e)

    async def get_record(self, record_id: int) -> MedicalRecord:
        try:
            record = self.db.query(MedicalRecord).filter(MedicalRecord.id == record_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get medical record {record_id}: {e}")
            raise BackendError(f"Failed to retrieve medical record: {str(e)}", e)

        if record is None:
            raise NotFoundError(f"Medical record {record_id} not found")
        return record

    async def get_files_uploaded_by(self, user_id: str) -> list[MedicalFile]:
        try:
            return (
                self.db.query(MedicalFile)
                .filter(MedicalFile.uploaded_by == user_id)
                .order_by(MedicalFile.uploaded_at.desc(), MedicalFile.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to get files uploaded by {user_id}: {e}")
            raise BackendError(f"Failed to retrieve medical files: {str(e)}", e)
