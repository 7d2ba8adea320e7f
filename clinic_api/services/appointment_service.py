"""Booking coordinator and appointment ledger queries.

The ledger is the ``appointments`` table. The application-level conflict check
gives a friendly error in the common case; the partial unique index on
``(doctor_id, date_time) WHERE status = 'scheduled'`` is what actually serialises
concurrent bookings of the same slot.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core import config
from clinic_api.core.clock import to_local_naive
from clinic_api.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PolicyViolationError,
    ScheduleValidationError,
    StorageError,
)
from clinic_api.models.appointment import Appointment
from clinic_api.scheduling.slot_generator import generate_slots, overlaps_booking
from clinic_api.scheduling.status_guard import authorize_status_change
from clinic_api.scheduling.types import (
    AppointmentState,
    AppointmentStatus,
    AppointmentType,
    AvailabilityWindow,
    BookedSlot,
    PaymentStatus,
    Role,
    Slot,
)
from clinic_api.services import doctor_service

logger = logging.getLogger(__name__)


def to_state(appointment: Appointment) -> AppointmentState:
    return AppointmentState(
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        date_time=appointment.date_time,
        status=appointment.status,
    )


def find_active_appointment(db: Session, doctor_id: int, date_time: datetime) -> Appointment | None:
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date_time == date_time,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
    ).first()


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError('Appointment not found')
    return appointment


def _ensure_offered_slot(windows: list[AvailabilityWindow], date_time: datetime) -> None:
    # Only slot starts the generator would list are bookable.
    if not any(window.offers(date_time, config.SLOT_INTERVAL_MINUTES) for window in windows):
        raise ScheduleValidationError('Doctor is not available at the requested time')


def create_appointment(
    db: Session,
    doctor_id: int,
    patient_id: int,
    date_time: datetime,
    appointment_type: AppointmentType,
    symptoms: str,
    payment_amount: float,
    now: datetime,
    duration_minutes: int | None = None,
    notes: str | None = None,
) -> Appointment:
    doctor_service.get_doctor(db, doctor_id)

    date_time = to_local_naive(date_time)
    if date_time <= now:
        raise ScheduleValidationError('Appointments must be scheduled in the future')

    if config.ENFORCE_AVAILABILITY_WINDOWS:
        _ensure_offered_slot(doctor_service.get_doctor_windows(db, doctor_id), date_time)

    duration_minutes = duration_minutes or config.DEFAULT_APPOINTMENT_DURATION_MINUTES

    if find_active_appointment(db, doctor_id, date_time) is not None:
        logger.warning('Rejected booking for doctor %s at %s: slot already booked', doctor_id, date_time)
        raise ConflictError()

    if config.STRICT_SLOT_OVERLAP:
        nearby = get_booked_slots(
            db,
            doctor_id,
            date_time - timedelta(days=1),
            date_time + timedelta(minutes=duration_minutes),
        )
        if overlaps_booking(date_time, duration_minutes, nearby):
            logger.warning('Rejected booking for doctor %s at %s: overlaps a longer booking', doctor_id, date_time)
            raise ConflictError()

    appointment = Appointment(
        doctor_id=doctor_id,
        patient_id=patient_id,
        date_time=date_time,
        duration_minutes=duration_minutes,
        status=AppointmentStatus.SCHEDULED.value,
        appointment_type=AppointmentType(appointment_type).value,
        symptoms=symptoms,
        notes=notes,
        payment_amount=payment_amount,
        payment_status=PaymentStatus.PENDING.value,
    )
    db.add(appointment)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if find_active_appointment(db, doctor_id, date_time) is not None:
            logger.warning('Rejected booking for doctor %s at %s: lost race for slot', doctor_id, date_time)
            raise ConflictError() from exc
        raise StorageError() from exc

    db.refresh(appointment)
    logger.info('Booked appointment %s for doctor %s at %s', appointment.id, doctor_id, date_time)
    return appointment


def change_status(
    db: Session,
    appointment_id: int,
    new_status: AppointmentStatus,
    acting_user_id: int,
    acting_role: Role,
    now: datetime,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    new_status = AppointmentStatus(new_status)

    try:
        authorize_status_change(
            to_state(appointment),
            new_status,
            acting_user_id,
            acting_role,
            now,
            cutoff_hours=config.CANCELLATION_CUTOFF_HOURS,
            admin_bypasses_cutoff=config.ADMIN_BYPASSES_CANCELLATION_CUTOFF,
        )
    except (ForbiddenError, PolicyViolationError) as exc:
        logger.warning(
            'Rejected moving appointment %s to %s for user %s: %s',
            appointment_id,
            new_status.value,
            acting_user_id,
            exc.message,
        )
        raise

    # Compare-and-set: only a still-scheduled row may move.
    updated = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
    ).update(
        {Appointment.status: new_status.value, Appointment.updated_at: now},
        synchronize_session=False,
    )
    if updated == 0:
        db.rollback()
        raise InvalidTransitionError('Appointment status was changed by another request')

    db.commit()
    db.refresh(appointment)

    logger.info(
        'Appointment %s moved to %s by user %s (%s)',
        appointment_id,
        new_status.value,
        acting_user_id,
        Role(acting_role).value,
    )
    return appointment


def get_booked_slots(db: Session, doctor_id: int, range_start: datetime, range_end: datetime) -> list[BookedSlot]:
    rows = db.query(Appointment.date_time, Appointment.duration_minutes).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
        Appointment.date_time >= range_start,
        Appointment.date_time <= range_end,
    ).order_by(Appointment.date_time.asc()).all()
    return [BookedSlot(date_time=date_time, duration_minutes=duration) for date_time, duration in rows]


def get_doctor_availability(
    db: Session,
    doctor_id: int,
    now: datetime,
    horizon_days: int | None = None,
) -> tuple[list[AvailabilityWindow], list[BookedSlot]]:
    """The doctor's weekly template and the scheduled bookings from ``now`` through the horizon."""
    doctor_service.get_doctor(db, doctor_id)
    horizon_days = horizon_days or config.SLOT_HORIZON_DAYS

    windows = doctor_service.get_doctor_windows(db, doctor_id)
    booked = get_booked_slots(db, doctor_id, now, now + timedelta(days=horizon_days))
    return windows, booked


def get_doctor_slots(
    db: Session,
    doctor_id: int,
    now: datetime,
    horizon_days: int | None = None,
    slot_interval_minutes: int | None = None,
) -> list[Slot]:
    doctor_service.get_doctor(db, doctor_id)
    horizon_days = horizon_days or config.SLOT_HORIZON_DAYS
    slot_interval_minutes = slot_interval_minutes or config.SLOT_INTERVAL_MINUTES

    day_start = datetime.combine(now.date(), datetime.min.time())
    day_end = day_start + timedelta(days=horizon_days + 1)

    return generate_slots(
        doctor_service.get_doctor_windows(db, doctor_id),
        get_booked_slots(db, doctor_id, day_start, day_end),
        horizon_start=now.date(),
        horizon_days=horizon_days,
        slot_interval_minutes=slot_interval_minutes,
        strict_overlap=config.STRICT_SLOT_OVERLAP,
    )


def list_user_appointments(db: Session, user_id: int, role: Role) -> list[Appointment]:
    column = Appointment.doctor_id if Role(role) == Role.DOCTOR else Appointment.patient_id
    return db.query(Appointment).filter(column == user_id).order_by(Appointment.date_time.desc()).all()


def get_doctor_upcoming_appointments(db: Session, doctor_id: int, now: datetime) -> list[Appointment]:
    doctor_service.get_doctor(db, doctor_id)
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date_time >= now,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
    ).order_by(Appointment.date_time.asc()).all()
