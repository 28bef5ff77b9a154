"""
Lab schedule and appointment models
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, JSON, UniqueConstraint
from sqlalchemy.sql import func
from medconnect.database import Base

class Schedule(Base):
    """A lab's bookable time slots for one day"""
    __tablename__ = "schedules"
    __table_args__ = (UniqueConstraint("lab_id", "date", name="uq_schedule_lab_date"),)

    id = Column(Integer, primary_key=True, index=True)
    lab_id = Column(String(64), index=True, nullable=False)
    date = Column(Date, nullable=False)
    slots = Column(JSON, nullable=False)  # [{"time": "08:00", "available": true}, ...]
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Schedule(id={self.id}, lab_id='{self.lab_id}', date='{self.date}')>"

class Appointment(Base):
    """A booked slot at a lab"""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    lab_id = Column(String(64), index=True, nullable=False)
    patient_id = Column(String(64), index=True, nullable=True)
    doctor_id = Column(String(64), index=True, nullable=True)
    test_type = Column(String(100), nullable=True)
    date_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="scheduled", nullable=False)  # scheduled, completed, cancelled
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Appointment(id={self.id}, lab_id='{self.lab_id}', at='{self.date_time}')>"
