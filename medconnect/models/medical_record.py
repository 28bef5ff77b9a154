"""
Medical record and uploaded file models
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from medconnect.database import Base

class MedicalRecord(Base):
    """A clinical entry in a patient's history"""
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(64), index=True, nullable=False)
    doctor_id = Column(String(64), index=True, nullable=True)
    record_type = Column(String(50), nullable=False)  # e.g. Consultation, Lab Test, Surgery
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    severity = Column(String(20), nullable=True)
    provider = Column(String(100), nullable=True)
    facility_name = Column(String(150), nullable=True)
    vital_signs = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<MedicalRecord(id={self.id}, patient_id='{self.patient_id}', type='{self.record_type}')>"

class MedicalFile(Base):
    """A file a patient or doctor uploaded outside the lab result flow"""
    __tablename__ = "medical_files"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(64), index=True, nullable=False)
    uploaded_by = Column(String(64), index=True, nullable=False)
    description = Column(String(50), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(20), nullable=True)
    file_url = Column(Text, nullable=False)
    storage_path = Column(String(512), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<MedicalFile(id={self.id}, patient_id='{self.patient_id}', file='{self.file_name}')>"
