"""
Pydantic schemas for test requests, results and uploads
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime

class TestRequestCreate(BaseModel):
    """Schema for ordering a lab test"""
    __test__ = False

    patient_id: str = Field(..., min_length=1, max_length=64, description="Patient's identity id")
    patient_name: Optional[str] = Field(None, max_length=100)
    lab_id: Optional[str] = Field(None, max_length=64, description="Lab owner's identity id")
    doctor_name: Optional[str] = Field(None, max_length=100)
    test_type: str = Field(..., min_length=1, max_length=100, description="Type of test, e.g. CBC")
    category: str = Field("Test Result", min_length=1, max_length=50, description="Storage category for the result")
    notes: Optional[str] = Field(None)

    @validator('category')
    def validate_category(cls, v):
        if "/" in v:
            raise ValueError('Category cannot contain "/"')
        return v.strip()

class TestRequestResponse(BaseModel):
    """Schema for test request responses"""
    __test__ = False

    id: int
    patient_id: str
    patient_name: Optional[str]
    lab_id: Optional[str]
    doctor_name: Optional[str]
    test_type: str
    category: str
    status: str
    notes: Optional[str]
    result_uploaded_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

class TestResultResponse(BaseModel):
    """Schema for uploaded result responses"""
    __test__ = False

    id: int
    patient_id: str
    patient_name: Optional[str]
    lab_id: Optional[str]
    test_name: Optional[str]
    category: str
    file_name: str
    file_type: Optional[str]
    file_url: str
    uploaded_at: Optional[datetime]

    class Config:
        from_attributes = True

class UploadResultResponse(BaseModel):
    """Schema returned after a test result upload"""
    result_id: int
    file_url: str
    message: str = "Test result uploaded successfully"

class TestStatusUpdate(BaseModel):
    """Schema for moving a test request to a new status"""
    __test__ = False

    status: str = Field(..., description="pending, in_progress, completed or cancelled")
