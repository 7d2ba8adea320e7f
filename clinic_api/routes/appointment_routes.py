import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.auth.dependencies import get_current_user
from clinic_api.core import config
from clinic_api.core.clock import Clock, get_clock
from clinic_api.core.errors import ForbiddenError, StorageError
from clinic_api.database import ensure_database_ready, get_db
from clinic_api.models.user import User
from clinic_api.routes.schemas import (
    AppointmentResponse,
    AvailabilityWindowResponse,
    BookedSlotResponse,
    SlotResponse,
)
from clinic_api.scheduling.slot_generator import free_slots
from clinic_api.scheduling.types import AppointmentStatus, AppointmentType, Role
from clinic_api.services import appointment_service, notification_service

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
MAX_APPOINTMENT_DURATION_MINUTES = 240


class CreateAppointmentRequest(BaseModel):
    doctor: int
    date_time: datetime = Field(alias='dateTime')
    type: AppointmentType
    symptoms: str
    payment_amount: float = Field(alias='paymentAmount', ge=0)
    duration_minutes: int | None = Field(
        default=None,
        alias='durationMinutes',
        gt=0,
        le=MAX_APPOINTMENT_DURATION_MINUTES,
    )
    notes: str | None = None

    class Config:
        populate_by_name = True

    @field_validator('symptoms')
    @classmethod
    def validate_symptoms(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Symptoms are required')
        if len(normalized) > config.MAX_SYMPTOMS_LENGTH:
            raise ValueError(f'Symptoms must be {config.MAX_SYMPTOMS_LENGTH} characters or fewer.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus


def _envelope(**data) -> dict:
    return {'success': True, 'data': data}


def _notify(db: Session, user_id: int, notification_type: str, message: str) -> None:
    try:
        notification_service.create_notification(db, user_id, notification_type, message)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Could not record %s notification for user %s', notification_type, user_id)


def _ensure_doctor_or_admin(current_user: User, doctor_id: int) -> None:
    if current_user.role != Role.ADMIN.value and current_user.id != doctor_id:
        raise ForbiddenError('Only the doctor or an administrator can view these appointments')


@router.post('', status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.create_appointment(
            db,
            doctor_id=data.doctor,
            patient_id=current_user.id,
            date_time=data.date_time,
            appointment_type=data.type,
            symptoms=data.symptoms,
            payment_amount=data.payment_amount,
            now=clock(),
            duration_minutes=data.duration_minutes,
            notes=data.notes,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while booking an appointment')
        raise StorageError() from exc

    _notify(
        db,
        appointment.doctor_id,
        notification_service.APPOINTMENT_BOOKED,
        f'New appointment booked for {appointment.date_time:%Y-%m-%d %H:%M}.',
    )
    return _envelope(appointment=AppointmentResponse.from_model(appointment))


@router.get('/my-appointments')
def list_my_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = appointment_service.list_user_appointments(db, current_user.id, Role(current_user.role))
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return _envelope(appointments=[AppointmentResponse.from_model(appointment) for appointment in appointments])


@router.patch('/{appointment_id}/status')
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.change_status(
            db,
            appointment_id=appointment_id,
            new_status=data.status,
            acting_user_id=current_user.id,
            acting_role=Role(current_user.role),
            now=clock(),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while updating appointment %s', appointment_id)
        raise StorageError() from exc

    counterparty_id = appointment.patient_id if current_user.id == appointment.doctor_id else appointment.doctor_id
    _notify(
        db,
        counterparty_id,
        notification_service.APPOINTMENT_STATUS_CHANGED,
        f'Appointment on {appointment.date_time:%Y-%m-%d %H:%M} is now {appointment.status}.',
    )
    return _envelope(appointment=AppointmentResponse.from_model(appointment))


@router.get('/doctor/{doctor_id}/availability')
def get_doctor_availability(
    doctor_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    del current_user
    ensure_database_ready()

    try:
        windows, booked = appointment_service.get_doctor_availability(db, doctor_id, now=clock())
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return _envelope(
        availability=[AvailabilityWindowResponse.from_window(window) for window in windows],
        bookedSlots=[BookedSlotResponse.from_booking(booking) for booking in booked],
    )


@router.get('/doctor/{doctor_id}/slots')
def list_doctor_slots(
    doctor_id: int,
    days: int | None = Query(default=None, ge=1, le=28),
    interval: int | None = Query(default=None, ge=5, le=240),
    free_only: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    del current_user
    ensure_database_ready()

    try:
        slots = appointment_service.get_doctor_slots(
            db,
            doctor_id,
            now=clock(),
            horizon_days=days,
            slot_interval_minutes=interval,
        )
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    if free_only:
        slots = free_slots(slots)
    return _envelope(slots=[SlotResponse.from_slot(slot) for slot in slots])


@router.get('/doctor/{doctor_id}/upcoming')
def list_doctor_upcoming_appointments(
    doctor_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _ensure_doctor_or_admin(current_user, doctor_id)
    ensure_database_ready()

    try:
        appointments = appointment_service.get_doctor_upcoming_appointments(db, doctor_id, now=clock())
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return _envelope(appointments=[AppointmentResponse.from_model(appointment) for appointment in appointments])
