"""
Lab schedule and appointment endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import date
import logging

from medconnect.config import RATE_LIMIT_ENABLED
from medconnect.database import get_db
from medconnect.auth.auth_handler import get_current_user
from medconnect.auth.session import Role, SessionUser
from medconnect.schemas.appointment import AppointmentCreate, AppointmentResponse, ScheduleResponse
from medconnect.services.appointment_service import AppointmentService

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()

@router.post("", response_model=AppointmentResponse, status_code=201)
@limiter.limit("10/minute")
async def book_appointment(
    request: Request,
    booking: AppointmentCreate,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book a lab slot; the caller is recorded as the patient, doctor or lab"""
    patient_id = booking.patient_id
    doctor_id = booking.doctor_id
    if current_user.role == Role.PATIENT:
        if patient_id and patient_id != current_user.auth_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
        patient_id = current_user.auth_id
    elif current_user.role == Role.DOCTOR:
        doctor_id = current_user.auth_id
    elif booking.lab_id != current_user.auth_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Lab owners can only book their own slots")

    service = AppointmentService(db)
    appointment = await service.book_slot(
        booking.lab_id,
        booking.date,
        booking.time,
        patient_id=patient_id,
        doctor_id=doctor_id,
        test_type=booking.test_type
    )
    return AppointmentResponse.model_validate(appointment)

@router.get("", response_model=list[AppointmentResponse])
@limiter.limit("30/minute")
async def list_appointments(
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Appointments the caller takes part in"""
    service = AppointmentService(db)
    appointments = await service.get_appointments(current_user.auth_id)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.get("/schedule", response_model=ScheduleResponse)
@limiter.limit("30/minute")
async def get_schedule(
    request: Request,
    lab_id: str = Query(..., description="Lab to show slots for"),
    day: date = Query(..., alias="date", description="Day, YYYY-MM-DD"),
    current_user: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Which slots of a lab day are still open"""
    service = AppointmentService(db)
    slots = await service.get_schedule(lab_id, day)
    return ScheduleResponse(lab_id=lab_id, date=day, slots=slots)
