"""Doctor directory and weekly availability templates."""

import logging
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from clinic_api.core.errors import NotFoundError
from clinic_api.models.appointment import Appointment
from clinic_api.models.availability import AvailabilityWindow as AvailabilityWindowRow
from clinic_api.models.user import DoctorProfile, User
from clinic_api.scheduling.types import WEEKDAYS, AvailabilityWindow, Role

logger = logging.getLogger(__name__)


def find_doctor_by_id(db: Session, doctor_id: int) -> User | None:
    return db.query(User).filter(User.id == doctor_id, User.role == Role.DOCTOR.value).first()


def get_doctor(db: Session, doctor_id: int) -> User:
    doctor = find_doctor_by_id(db, doctor_id)
    if doctor is None:
        raise NotFoundError('Doctor not found')
    return doctor


def to_window(row: AvailabilityWindowRow) -> AvailabilityWindow:
    return AvailabilityWindow(row.weekday, row.start_time, row.end_time)


def get_doctor_windows(db: Session, doctor_id: int) -> list[AvailabilityWindow]:
    rows = db.query(AvailabilityWindowRow).filter(
        AvailabilityWindowRow.doctor_id == doctor_id,
    ).all()
    return sort_windows([to_window(row) for row in rows])


def sort_windows(windows: list[AvailabilityWindow]) -> list[AvailabilityWindow]:
    return sorted(windows, key=lambda window: (WEEKDAYS.index(window.weekday), window.start_time, window.end_time))


def _write_windows(db: Session, doctor_id: int, windows: list[AvailabilityWindow]) -> None:
    db.query(AvailabilityWindowRow).filter(AvailabilityWindowRow.doctor_id == doctor_id).delete(
        synchronize_session=False,
    )
    for window in windows:
        db.add(
            AvailabilityWindowRow(
                doctor_id=doctor_id,
                weekday=window.weekday.value,
                start_time=window.start_time,
                end_time=window.end_time,
            )
        )


def replace_availability(db: Session, doctor_id: int, windows: list[AvailabilityWindow]) -> list[AvailabilityWindow]:
    """Replace the doctor's whole template; concurrent replacements are last-write-wins."""
    get_doctor(db, doctor_id)

    _write_windows(db, doctor_id, windows)
    db.commit()

    logger.info('Replaced availability for doctor %s with %d windows', doctor_id, len(windows))
    return get_doctor_windows(db, doctor_id)


def set_sample_availability(db: Session, windows: list[AvailabilityWindow]) -> int:
    doctor_ids = [doctor_id for (doctor_id,) in db.query(User.id).filter(User.role == Role.DOCTOR.value).all()]
    for doctor_id in doctor_ids:
        _write_windows(db, doctor_id, windows)
    db.commit()

    logger.info('Seeded sample availability for %d doctors', len(doctor_ids))
    return len(doctor_ids)


def _doctor_query(db: Session):
    return db.query(User).join(DoctorProfile, DoctorProfile.user_id == User.id).filter(
        User.role == Role.DOCTOR.value,
    )


def list_doctors(db: Session, specialization: str | None = None, name: str | None = None) -> list[User]:
    query = _doctor_query(db)
    if specialization:
        query = query.filter(DoctorProfile.specialization.ilike(f'%{specialization.strip()}%'))
    if name:
        query = query.filter(User.name.ilike(f'%{name.strip()}%'))
    return query.order_by(User.name.asc()).all()


def search_doctors(db: Session, term: str = '', limit: int = 10) -> list[User]:
    query = _doctor_query(db)
    term = term.strip()
    if term:
        pattern = f'%{term}%'
        query = query.filter(or_(User.name.ilike(pattern), DoctorProfile.specialization.ilike(pattern)))
    return query.order_by(User.name.asc()).limit(limit).all()


def get_doctor_stats(db: Session, doctor_id: int, now: datetime) -> dict[str, int]:
    """Appointment counts by status since the first day of the current month."""
    get_doctor(db, doctor_id)
    start_of_month = datetime(now.year, now.month, 1)

    rows = db.query(Appointment.status, func.count(Appointment.id)).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date_time >= start_of_month,
    ).group_by(Appointment.status).all()
    return {status: count for status, count in rows}


def update_online_status(db: Session, doctor_id: int, online: bool) -> User:
    doctor = get_doctor(db, doctor_id)
    doctor.doctor_profile.online = online
    db.commit()
    db.refresh(doctor)
    logger.info('Doctor %s is now %s', doctor_id, 'online' if online else 'offline')
    return doctor
