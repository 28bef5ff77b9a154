"""
Upload coordinator
Stores a file, then writes the database rows that point at it

Lab results close the matching pending test request and add a TestResult;
patient and doctor uploads add a MedicalFile. Both share one pipeline:
read -> upload -> public URL -> link, and a stored blob that never gets
linked is deleted again.
"""

from datetime import datetime
from typing import Callable, Optional
import asyncio
import inspect
import logging
import mimetypes

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from medconnect import config
from medconnect.models.medical_record import MedicalFile
from medconnect.models.test_request import TestRequest, TestResult
from medconnect.services.storage import StorageService, object_path
from medconnect.utils.error_handler import BackendError, ConsistencyError, MedConnectError, ValidationError
from medconnect.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

DEFAULT_FILE_DESCRIPTION = "uploads"

# Cleanups for uploads that outlived their timeout; held here so the loop keeps them alive
pending_cleanups: set = set()


def file_type_for(file_name: str) -> str:
    """Lower-cased extension, or empty string when the name has none"""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


class UploadCoordinator:
    """Pick -> upload -> link, with the blob removed again if linking fails"""

    def __init__(self, db: Session, storage: StorageService, timeout_seconds: Optional[float] = None):
        self.db = db
        self.storage = storage
        self.timeout_seconds = config.UPLOAD_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    async def _read(self, file_handle) -> bytes:
        try:
            data = file_handle.read()
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            raise BackendError(f"Failed to read file: {e}", e)

        if isinstance(data, str):
            data = data.encode("utf-8")
        return data

    async def upload_and_link(
        self,
        subject_id: str,
        file_handle,
        file_name: str,
        category: str,
        lab_id: Optional[str] = None
    ) -> int:
        """Store a lab result; returns the new test result id"""

        def link(path: str, file_url: str) -> TestResult:
            return self._link_test_result(subject_id, file_name, category, lab_id, path, file_url)

        result = await self._store_and_link(subject_id, file_handle, file_name, category, link)
        return result.id

    async def upload_medical_file(
        self,
        subject_id: str,
        file_handle,
        file_name: str,
        uploaded_by: str,
        description: Optional[str] = None
    ) -> MedicalFile:
        """Store a patient or doctor upload under its description folder"""
        description = (description or "").strip() or DEFAULT_FILE_DESCRIPTION

        def link(path: str, file_url: str) -> MedicalFile:
            return self._record_medical_file(subject_id, uploaded_by, description, file_name, path, file_url)

        return await self._store_and_link(subject_id, file_handle, file_name, description, link)

    async def _store_and_link(
        self,
        subject_id: str,
        file_handle,
        file_name: str,
        category: str,
        link: Callable[[str, str], object]
    ):
        if not subject_id or not file_name or not category:
            raise ValidationError("Patient, file name and category are required")
        if "/" in category:
            raise ValidationError('Category cannot contain "/"')

        data = await self._read(file_handle)
        if not data:
            raise ValidationError("File is empty")

        path = object_path(category, subject_id, file_name)
        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        await self._upload(path, data, content_type)

        try:
            file_url = self.storage.get_public_url(path)
            record = link(path, file_url)
        except Exception as e:
            await self._discard_upload(path)
            if isinstance(e, MedConnectError):
                raise
            raise BackendError(f"Failed to record upload: {str(e)}", e)

        logger.info(f"Linked upload {path} as {type(record).__name__} {record.id}")
        return record

    async def _upload(self, path: str, data: bytes, content_type: str) -> None:
        """Upload under the configured timeout; a late finish is cleaned up once it lands"""
        upload = asyncio.ensure_future(self.storage.upload(path, data, content_type))
        try:
            await with_timeout(asyncio.shield(upload), self.timeout_seconds, "File upload")
        except BackendError:
            if not upload.done():
                cleanup = asyncio.ensure_future(self._discard_late_upload(upload, path))
                pending_cleanups.add(cleanup)
                cleanup.add_done_callback(pending_cleanups.discard)
            raise

    async def _discard_late_upload(self, upload: asyncio.Future, path: str) -> None:
        try:
            await upload
        except Exception as e:
            logger.info(f"Timed-out upload {path} did not complete: {e}")
            return
        logger.warning(f"Upload {path} finished after its timeout, removing it")
        await self._discard_upload(path)

    def _find_pending_request(self, subject_id: str, category: str, lab_id: Optional[str]) -> Optional[TestRequest]:
        query = self.db.query(TestRequest).filter(
            TestRequest.patient_id == subject_id,
            TestRequest.category == category,
            TestRequest.status == "pending",
        )
        if lab_id:
            query = query.filter(TestRequest.lab_id == lab_id)
        return query.order_by(TestRequest.created_at.asc(), TestRequest.id.asc()).first()

    def _link_test_result(
        self,
        subject_id: str,
        file_name: str,
        category: str,
        lab_id: Optional[str],
        path: str,
        file_url: str
    ) -> TestResult:
        try:
            request = self._find_pending_request(subject_id, category, lab_id)
            now = datetime.utcnow()
            if request is not None:
                request.status = "completed"
                request.result_uploaded_at = now
                request.updated_at = now

            result = TestResult(
                patient_id=subject_id,
                patient_name=request.patient_name if request else None,
                lab_id=lab_id or (request.lab_id if request else None),
                test_name=request.test_type if request else None,
                category=category,
                file_name=file_name,
                file_type=file_type_for(file_name),
                file_url=file_url,
                storage_path=path,
                uploaded_at=now,
            )
            self.db.add(result)
            self.db.commit()
            self.db.refresh(result)
            return result

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record test result for {subject_id}: {e}")
            raise BackendError(f"Failed to record test result: {str(e)}", e)

    def _record_medical_file(
        self,
        subject_id: str,
        uploaded_by: str,
        description: str,
        file_name: str,
        path: str,
        file_url: str
    ) -> MedicalFile:
        try:
            medical_file = MedicalFile(
                patient_id=subject_id,
                uploaded_by=uploaded_by,
                description=description,
                file_name=file_name,
                file_type=file_type_for(file_name),
                file_url=file_url,
                storage_path=path,
                uploaded_at=datetime.utcnow(),
            )
            self.db.add(medical_file)
            self.db.commit()
            self.db.refresh(medical_file)
            return medical_file

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record medical file for {subject_id}: {e}")
            raise BackendError(f"Failed to record medical file: {str(e)}", e)

    async def _discard_upload(self, path: str) -> None:
        """Compensate a stored blob whose record could not be written"""
        try:
            await self.storage.delete(path)
            logger.info(f"Removed unlinked upload {path}")
        except Exception as e:
            error = ConsistencyError(f"Orphaned upload {path}: {e}", e)
            logger.error(str(error), extra={"error_code": error.error_code, "storage_path": path})
