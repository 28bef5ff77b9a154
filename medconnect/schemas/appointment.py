"""
Pydantic schemas for lab schedules and appointments
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date as date_type, datetime

class AppointmentCreate(BaseModel):
    """Schema for booking a lab slot"""
    lab_id: str = Field(..., min_length=1, max_length=64)
    date: date_type = Field(..., description="Day of the appointment")
    time: str = Field(..., description="Half-hour slot, HH:MM between 08:00 and 17:30")
    patient_id: Optional[str] = Field(None, max_length=64)
    doctor_id: Optional[str] = Field(None, max_length=64)
    test_type: Optional[str] = Field(None, max_length=100)

class AppointmentResponse(BaseModel):
    id: int
    lab_id: str
    patient_id: Optional[str]
    doctor_id: Optional[str]
    test_type: Optional[str]
    date_time: datetime
    status: str

    class Config:
        from_attributes = True

class TimeSlot(BaseModel):
    time: str
    available: bool

class ScheduleResponse(BaseModel):
    lab_id: str
    date: date_type
    slots: list[TimeSlot]
