import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.auth.dependencies import get_current_user, require_roles
from clinic_api.core import config
from clinic_api.core.clock import Clock, get_clock
from clinic_api.core.errors import ForbiddenError, StorageError
from clinic_api.database import get_db
from clinic_api.models.user import User
from clinic_api.routes.schemas import AvailabilityWindowResponse, UserResponse
from clinic_api.scheduling.schedule_parser import build_window, parse_schedule
from clinic_api.scheduling.types import AvailabilityWindow, Role
from clinic_api.services import doctor_service

router = APIRouter(tags=['doctors'])

logger = logging.getLogger(__name__)


class AvailabilityWindowPayload(BaseModel):
    day: str
    start_time: str = Field(alias='startTime')
    end_time: str = Field(alias='endTime')

    class Config:
        populate_by_name = True


class UpdateAvailabilityRequest(BaseModel):
    """Either structured windows or a schedule expression such as ``Mon-Fri 9-5``."""

    availability: list[AvailabilityWindowPayload] | None = None
    schedule: str | None = None

    @model_validator(mode='after')
    def validate_one_source(self) -> 'UpdateAvailabilityRequest':
        if (self.availability is None) == (self.schedule is None):
            raise ValueError('Provide exactly one of availability or schedule.')
        return self

    def to_windows(self) -> list[AvailabilityWindow]:
        if self.schedule is not None:
            return parse_schedule(self.schedule)
        return [build_window(item.day, item.start_time, item.end_time) for item in self.availability]


class UpdateOnlineStatusRequest(BaseModel):
    online: bool


def _doctor_payload(db: Session, doctor: User) -> dict:
    payload = UserResponse.from_model(doctor).model_dump()
    payload['availability'] = [
        AvailabilityWindowResponse.from_window(window).model_dump(by_alias=True)
        for window in doctor_service.get_doctor_windows(db, doctor.id)
    ]
    return payload


@router.get('')
def list_doctors(
    specialization: str | None = Query(default=None),
    name: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        doctors = doctor_service.list_doctors(db, specialization=specialization, name=name)
        return {'success': True, 'data': {'doctors': [_doctor_payload(db, doctor) for doctor in doctors]}}
    except SQLAlchemyError as exc:
        raise StorageError() from exc


@router.get('/search')
def search_doctors(
    q: str = Query(default=''),
    limit: int = Query(default=10, ge=1, le=config.MAX_SEARCH_RESULTS),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        doctors = doctor_service.search_doctors(db, term=q, limit=limit)
        return {'success': True, 'data': {'doctors': [UserResponse.from_model(doctor) for doctor in doctors]}}
    except SQLAlchemyError as exc:
        raise StorageError() from exc


@router.post('/availability/sample')
def seed_sample_availability(
    data: UpdateAvailabilityRequest,
    current_user: User = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    windows = data.to_windows()

    try:
        updated = doctor_service.set_sample_availability(db, windows)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while seeding availability (admin %s)', current_user.id)
        raise StorageError() from exc

    return {'success': True, 'data': {'updatedDoctors': updated}}


@router.get('/{doctor_id}')
def get_doctor(
    doctor_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        doctor = doctor_service.get_doctor(db, doctor_id)
        return {'success': True, 'data': {'doctor': _doctor_payload(db, doctor)}}
    except SQLAlchemyError as exc:
        raise StorageError() from exc


@router.patch('/{doctor_id}/availability')
@router.put('/{doctor_id}/availability')
def update_doctor_availability(
    doctor_id: int,
    data: UpdateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.role != Role.ADMIN.value and current_user.id != doctor_id:
        raise ForbiddenError('Only the doctor or an administrator can change this availability')

    windows = data.to_windows()

    try:
        saved = doctor_service.replace_availability(db, doctor_id, windows)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while replacing availability for doctor %s', doctor_id)
        raise StorageError() from exc

    return {
        'success': True,
        'data': {'availability': [AvailabilityWindowResponse.from_window(window) for window in saved]},
    }


@router.patch('/{doctor_id}/online')
def update_doctor_online_status(
    doctor_id: int,
    data: UpdateOnlineStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.id != doctor_id:
        raise ForbiddenError('Only the doctor can change their online status')

    try:
        doctor = doctor_service.update_online_status(db, doctor_id, data.online)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Storage failure while updating online status for doctor %s', doctor_id)
        raise StorageError() from exc

    return {'success': True, 'data': {'doctor': UserResponse.from_model(doctor)}}


@router.get('/{doctor_id}/stats')
def get_doctor_stats(
    doctor_id: int,
    current_user: User = Depends(require_roles(Role.DOCTOR, Role.ADMIN)),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if current_user.role != Role.ADMIN.value and current_user.id != doctor_id:
        raise ForbiddenError('Only the doctor or an administrator can view these statistics')

    try:
        stats = doctor_service.get_doctor_stats(db, doctor_id, now=clock())
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {'success': True, 'data': {'stats': stats}}
