"""
Lab schedules and appointments
"""

from datetime import date, datetime, time
from typing import Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from medconnect.models.appointment import Appointment, Schedule
from medconnect.utils.error_handler import BackendError, ValidationError

logger = logging.getLogger(__name__)

# Half-hour slots a lab day is split into
TIME_SLOTS = (
    "08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "12:00", "12:30", "13:00", "13:30", "14:00", "14:30", "15:00", "15:30",
    "16:00", "16:30", "17:00", "17:30",
)


def blank_day(booked: Optional[str] = None) -> list[dict]:
    return [{"time": slot, "available": slot != booked} for slot in TIME_SLOTS]


class AppointmentService:
    """Book lab slots and list appointments for any participant"""

    def __init__(self, db: Session):
        self.db = db

    async def get_schedule(self, lab_id: str, day: date) -> list[dict]:
        """Slots for a lab day; a day with no schedule row is fully open"""
        try:
            schedule = self._schedule_for(lab_id, day)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load schedule for {lab_id} on {day}: {e}")
            raise BackendError(f"Failed to load schedule: {str(e)}", e)
        return list(schedule.slots) if schedule else blank_day()

    def _schedule_for(self, lab_id: str, day: date) -> Optional[Schedule]:
        return (
            self.db.query(Schedule)
            .filter(Schedule.lab_id == lab_id, Schedule.date == day)
            .first()
        )

    async def book_slot(
        self,
        lab_id: str,
        day: date,
        slot: str,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        test_type: Optional[str] = None
    ) -> Appointment:
        """Mark a slot taken and create the appointment in one commit"""
        if slot not in TIME_SLOTS:
            raise ValidationError(f"Unknown time slot: {slot}")

        try:
            schedule = self._schedule_for(lab_id, day)
            if schedule is None:
                schedule = Schedule(lab_id=lab_id, date=day, slots=blank_day(booked=slot))
                self.db.add(schedule)
            else:
                slots = [dict(entry) for entry in schedule.slots]
                entry = next((s for s in slots if s["time"] == slot), None)
                if entry is None:
                    slots.append({"time": slot, "available": False})
                elif not entry["available"]:
                    raise ValidationError(f"Time slot {slot} on {day} is already booked")
                else:
                    entry["available"] = False
                # JSON columns only persist on reassignment
                schedule.slots = slots
                schedule.updated_at = datetime.utcnow()

            appointment = Appointment(
                lab_id=lab_id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                test_type=test_type,
                date_time=datetime.combine(day, time.fromisoformat(slot)),
                status="scheduled",
            )
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)

            logger.info(f"Booked {slot} on {day} at lab {lab_id} (appointment {appointment.id})")
            return appointment

        except ValidationError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to book slot {slot} on {day} for lab {lab_id}: {e}")
            raise BackendError(f"Failed to book appointment: {str(e)}", e)

    async def get_appointments(self, user_id: str) -> list[Appointment]:
        """Appointments where the user is the patient, the doctor or the lab; newest first"""
        try:
            return (
                self.db.query(Appointment)
                .filter(or_(
                    Appointment.patient_id == user_id,
                    Appointment.doctor_id == user_id,
                    Appointment.lab_id == user_id,
                ))
                .order_by(Appointment.date_time.desc(), Appointment.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to get appointments for {user_id}: {e}")
            raise BackendError(f"Failed to retrieve appointments: {str(e)}", e)
