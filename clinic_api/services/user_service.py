"""Registration and credential checks for patients and doctors."""

import logging
from datetime import date

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core.errors import AuthenticationError, ScheduleValidationError
from clinic_api.models.availability import AvailabilityWindow as AvailabilityWindowRow
from clinic_api.models.user import DoctorProfile, PatientProfile, User
from clinic_api.scheduling.types import AvailabilityWindow, Role

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return bcrypt.checkpw(password.encode(), hashed_password.encode())


def find_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def _new_user(db: Session, name: str, email: str, password: str, role: Role, phone: str | None) -> User:
    if find_user_by_email(db, email) is not None:
        raise ScheduleValidationError('User already exists')

    return User(
        name=name.strip(),
        email=email.strip().lower(),
        hashed_password=hash_password(password),
        role=role.value,
        phone=phone,
    )


def _save_user(db: Session, user: User, availability: list[AvailabilityWindow] | None = None) -> User:
    db.add(user)
    try:
        db.flush()
        for window in availability or []:
            db.add(
                AvailabilityWindowRow(
                    doctor_id=user.id,
                    weekday=window.weekday.value,
                    start_time=window.start_time,
                    end_time=window.end_time,
                )
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ScheduleValidationError('User already exists') from exc
    db.refresh(user)
    logger.info('Registered %s user %s', user.role, user.id)
    return user


def register_patient(
    db: Session,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    date_of_birth: date | None = None,
    gender: str | None = None,
    blood_group: str | None = None,
    emergency_contact: str | None = None,
) -> User:
    user = _new_user(db, name, email, password, Role.PATIENT, phone)
    user.patient_profile = PatientProfile(
        date_of_birth=date_of_birth,
        gender=gender,
        blood_group=blood_group,
        emergency_contact=emergency_contact,
    )
    return _save_user(db, user)


def register_doctor(
    db: Session,
    name: str,
    email: str,
    password: str,
    specialization: str,
    qualification: str,
    experience_years: int,
    clinic_name: str,
    consultation_fee: float,
    bio: str,
    availability: list[AvailabilityWindow],
    phone: str | None = None,
    license_number: str | None = None,
    video_consultation: bool = False,
) -> User:
    user = _new_user(db, name, email, password, Role.DOCTOR, phone)
    user.doctor_profile = DoctorProfile(
        specialization=specialization,
        qualification=qualification,
        experience_years=experience_years,
        clinic_name=clinic_name,
        consultation_fee=consultation_fee,
        bio=bio,
        license_number=license_number,
        video_consultation=video_consultation,
    )
    return _save_user(db, user, availability)


def authenticate(db: Session, email: str, password: str) -> User:
    user = find_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        raise AuthenticationError('Invalid credentials')
    return user
