from datetime import date
from typing import Literal, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.auth import jwt_handler
from clinic_api.auth.dependencies import get_current_user
from clinic_api.core.errors import StorageError
from clinic_api.database import get_db
from clinic_api.models.user import User
from clinic_api.routes.schemas import UserResponse
from clinic_api.scheduling.schedule_parser import parse_schedule
from clinic_api.services import user_service

router = APIRouter(tags=['auth'])

MIN_PASSWORD_LENGTH = 6


class RegistrationBase(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    phone: str | None = None

    class Config:
        populate_by_name = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        local_part, _, domain = normalized.partition('@')
        if not local_part or '.' not in domain:
            raise ValueError('Please enter a valid email')
        return normalized


class PatientRegistration(RegistrationBase):
    role: Literal['patient']
    date_of_birth: date | None = Field(default=None, alias='dateOfBirth')
    gender: Literal['male', 'female', 'other'] | None = None
    blood_group: Literal['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'] | None = Field(
        default=None,
        alias='bloodGroup',
    )
    emergency_contact: str | None = Field(default=None, alias='emergencyContact')


class DoctorRegistration(RegistrationBase):
    role: Literal['doctor']
    specialization: str = Field(min_length=1)
    qualification: str = Field(min_length=1)
    experience: int = Field(ge=0)
    clinic_name: str = Field(alias='clinicName', min_length=1)
    consultation_fee: float = Field(alias='consultationFee', ge=0)
    bio: str = Field(min_length=1)
    availability: str | None = None
    license_number: str | None = Field(default=None, alias='registrationNumber')
    video_consultation: bool = Field(default=False, alias='videoConsultation')


# Told apart by the literal ``role`` field.
RegistrationRequest = Union[PatientRegistration, DoctorRegistration]


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


def _session_payload(user: User) -> dict:
    token = jwt_handler.create_access_token(subject=str(user.id), role=user.role)
    return {'success': True, 'data': {'user': UserResponse.from_model(user), 'token': token}}


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(data: RegistrationRequest, db: Session = Depends(get_db)):
    try:
        if isinstance(data, DoctorRegistration):
            user = user_service.register_doctor(
                db,
                name=data.name,
                email=data.email,
                password=data.password,
                phone=data.phone,
                specialization=data.specialization,
                qualification=data.qualification,
                experience_years=data.experience,
                clinic_name=data.clinic_name,
                consultation_fee=data.consultation_fee,
                bio=data.bio,
                availability=parse_schedule(data.availability),
                license_number=data.license_number,
                video_consultation=data.video_consultation,
            )
        else:
            user = user_service.register_patient(
                db,
                name=data.name,
                email=data.email,
                password=data.password,
                phone=data.phone,
                date_of_birth=data.date_of_birth,
                gender=data.gender,
                blood_group=data.blood_group,
                emergency_contact=data.emergency_contact,
            )
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError() from exc

    payload = _session_payload(user)
    payload['message'] = 'User registered successfully'
    return payload


@router.post('/login')
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = user_service.authenticate(db, data.email, data.password)
    except SQLAlchemyError as exc:
        raise StorageError() from exc
    return _session_payload(user)


@router.get('/me')
def me(current_user: User = Depends(get_current_user)):
    return {'success': True, 'data': {'user': UserResponse.from_model(current_user)}}
