"""
Pydantic schemas for medical records and uploaded files
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class MedicalRecordCreate(BaseModel):
    """Schema for adding a record to a patient's history"""
    patient_id: str = Field(..., min_length=1, max_length=64)
    record_type: str = Field(..., min_length=1, max_length=50, description="Consultation, Lab Test, Surgery...")
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    severity: Optional[str] = Field(None, max_length=20)
    provider: Optional[str] = Field(None, max_length=100)
    facility_name: Optional[str] = Field(None, max_length=150)
    vital_signs: Optional[dict] = Field(None, description="bloodPressure, heartRate, temperature...")
    notes: Optional[str] = None
    file_url: Optional[str] = None

class MedicalRecordResponse(BaseModel):
    id: int
    patient_id: str
    doctor_id: Optional[str]
    record_type: str
    diagnosis: Optional[str]
    treatment: Optional[str]
    severity: Optional[str]
    provider: Optional[str]
    facility_name: Optional[str]
    vital_signs: Optional[dict]
    notes: Optional[str]
    file_url: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True

class MedicalFileResponse(BaseModel):
    """Schema for patient and doctor uploads"""
    id: int
    patient_id: str
    uploaded_by: str
    description: str
    file_name: str
    file_type: Optional[str]
    file_url: str
    uploaded_at: Optional[datetime]

    class Config:
        from_attributes = True
