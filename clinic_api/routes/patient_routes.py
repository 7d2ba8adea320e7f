from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.auth.dependencies import get_current_user, require_roles
from clinic_api.core import config
from clinic_api.core.clock import Clock, get_clock
from clinic_api.core.errors import ForbiddenError, StorageError
from clinic_api.database import get_db
from clinic_api.models.user import User
from clinic_api.routes.schemas import AppointmentResponse, UserResponse
from clinic_api.scheduling.types import Role
from clinic_api.services import patient_service

router = APIRouter(tags=['patients'])


def _ensure_can_view_patient(db: Session, current_user: User, patient_id: int) -> None:
    if current_user.role == Role.ADMIN.value or current_user.id == patient_id:
        return
    if current_user.role == Role.DOCTOR.value and patient_service.has_seen_patient(db, current_user.id, patient_id):
        return
    raise ForbiddenError('Not authorized to view this patient')


@router.get('/search')
def search_patients(
    q: str = Query(default=''),
    limit: int = Query(default=10, ge=1, le=config.MAX_SEARCH_RESULTS),
    current_user: User = Depends(require_roles(Role.DOCTOR, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        patients = patient_service.search_patients(db, term=q, limit=limit)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {'success': True, 'data': {'patients': [UserResponse.from_model(patient) for patient in patients]}}


@router.get('/doctor/{doctor_id}')
def list_doctor_patients(
    doctor_id: int,
    current_user: User = Depends(require_roles(Role.DOCTOR, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    if current_user.role != Role.ADMIN.value and current_user.id != doctor_id:
        raise ForbiddenError('Only the doctor or an administrator can view these patients')

    try:
        patients = patient_service.get_doctor_patients(db, doctor_id)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {'success': True, 'data': {'patients': [UserResponse.from_model(patient) for patient in patients]}}


@router.get('/{patient_id}')
def get_patient(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        _ensure_can_view_patient(db, current_user, patient_id)
        patient = patient_service.get_patient(db, patient_id)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {'success': True, 'data': {'patient': UserResponse.from_model(patient)}}


@router.get('/{patient_id}/appointments')
def get_patient_appointment_history(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        _ensure_can_view_patient(db, current_user, patient_id)
        appointments = patient_service.get_patient_appointment_history(db, patient_id)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {
        'success': True,
        'data': {'appointments': [AppointmentResponse.from_model(appointment) for appointment in appointments]},
    }


@router.get('/{patient_id}/upcoming')
def get_patient_upcoming_appointments(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        _ensure_can_view_patient(db, current_user, patient_id)
        appointments = patient_service.get_patient_upcoming_appointments(db, patient_id, now=clock())
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {
        'success': True,
        'data': {'appointments': [AppointmentResponse.from_model(appointment) for appointment in appointments]},
    }
