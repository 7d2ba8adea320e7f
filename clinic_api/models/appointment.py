"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from clinic_api.database import ACTIVE_SLOT_INDEX, Base


class Appointment(Base):
    """A ledger entry; never deleted, only moved between statuses."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    status = Column(String, nullable=False, default="scheduled")
    appointment_type = Column(String, nullable=False)
    symptoms = Column(Text, nullable=False)
    diagnosis = Column(Text)
    prescription = Column(Text)
    notes = Column(Text)
    follow_up = Column(DateTime)
    payment_amount = Column(Float, nullable=False)
    payment_status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        # One active appointment per doctor and start time.
        Index(
            ACTIVE_SLOT_INDEX,
            "doctor_id",
            "date_time",
            unique=True,
            postgresql_where=text("status = 'scheduled'"),
            sqlite_where=text("status = 'scheduled'"),
        ),
        Index("idx_appointments_patient_date_time", "patient_id", "date_time"),
    )
