"""Patient records as seen by doctors and administrators."""

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clinic_api.core.errors import NotFoundError
from clinic_api.models.appointment import Appointment
from clinic_api.models.user import User
from clinic_api.scheduling.types import AppointmentStatus, Role
from clinic_api.services import doctor_service, user_service


def get_patient(db: Session, patient_id: int) -> User:
    patient = user_service.find_user_by_id(db, patient_id)
    if patient is None or patient.role != Role.PATIENT.value:
        raise NotFoundError('Patient not found')
    return patient


def has_seen_patient(db: Session, doctor_id: int, patient_id: int) -> bool:
    """True when the doctor has any appointment with the patient, whatever its status."""
    return db.query(Appointment.id).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.patient_id == patient_id,
    ).first() is not None


def get_doctor_patients(db: Session, doctor_id: int) -> list[User]:
    """Distinct patients with at least one completed appointment with the doctor."""
    doctor_service.get_doctor(db, doctor_id)
    seen = select(Appointment.patient_id).where(
        Appointment.doctor_id == doctor_id,
        Appointment.status == AppointmentStatus.COMPLETED.value,
    )
    return db.query(User).filter(
        User.id.in_(seen),
        User.role == Role.PATIENT.value,
    ).order_by(User.name.asc()).all()


def get_patient_appointment_history(db: Session, patient_id: int) -> list[Appointment]:
    get_patient(db, patient_id)
    return db.query(Appointment).filter(
        Appointment.patient_id == patient_id,
    ).order_by(Appointment.date_time.desc()).all()


def get_patient_upcoming_appointments(db: Session, patient_id: int, now: datetime) -> list[Appointment]:
    get_patient(db, patient_id)
    return db.query(Appointment).filter(
        Appointment.patient_id == patient_id,
        Appointment.date_time >= now,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
    ).order_by(Appointment.date_time.asc()).all()


def search_patients(db: Session, term: str = '', limit: int = 10) -> list[User]:
    query = db.query(User).filter(User.role == Role.PATIENT.value)
    term = term.strip()
    if term:
        pattern = f'%{term}%'
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    return query.order_by(User.name.asc()).limit(limit).all()
