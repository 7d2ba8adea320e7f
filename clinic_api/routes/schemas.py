"""Wire representations shared by several routers."""

from datetime import date, datetime, time

from pydantic import BaseModel, Field

from clinic_api.models.appointment import Appointment
from clinic_api.models.user import User
from clinic_api.scheduling.types import AvailabilityWindow, BookedSlot, Slot


class AvailabilityWindowResponse(BaseModel):
    day: str
    start_time: str = Field(alias='startTime')
    end_time: str = Field(alias='endTime')

    class Config:
        populate_by_name = True

    @classmethod
    def from_window(cls, window: AvailabilityWindow) -> 'AvailabilityWindowResponse':
        return cls(
            day=window.weekday.value,
            start_time=window.start_time.strftime('%H:%M'),
            end_time=window.end_time.strftime('%H:%M'),
        )


class BookedSlotResponse(BaseModel):
    date_time: datetime = Field(alias='dateTime')
    duration_minutes: int = Field(alias='durationMinutes')

    class Config:
        populate_by_name = True

    @classmethod
    def from_booking(cls, booking: BookedSlot) -> 'BookedSlotResponse':
        return cls(date_time=booking.date_time, duration_minutes=booking.duration_minutes)


class SlotResponse(BaseModel):
    date: date
    time: time
    status: str

    @classmethod
    def from_slot(cls, slot: Slot) -> 'SlotResponse':
        return cls(date=slot.date, time=slot.time, status=slot.status.value)


class AppointmentResponse(BaseModel):
    id: int
    doctor: int
    patient: int
    date_time: datetime = Field(alias='dateTime')
    duration_minutes: int = Field(alias='durationMinutes')
    status: str
    type: str
    symptoms: str
    diagnosis: str | None = None
    prescription: str | None = None
    notes: str | None = None
    follow_up: datetime | None = Field(default=None, alias='followUp')
    payment_amount: float = Field(alias='paymentAmount')
    payment_status: str = Field(alias='paymentStatus')
    created_at: datetime | None = Field(default=None, alias='createdAt')
    updated_at: datetime | None = Field(default=None, alias='updatedAt')

    class Config:
        populate_by_name = True

    @classmethod
    def from_model(cls, appointment: Appointment) -> 'AppointmentResponse':
        return cls(
            id=appointment.id,
            doctor=appointment.doctor_id,
            patient=appointment.patient_id,
            date_time=appointment.date_time,
            duration_minutes=appointment.duration_minutes,
            status=appointment.status,
            type=appointment.appointment_type,
            symptoms=appointment.symptoms,
            diagnosis=appointment.diagnosis,
            prescription=appointment.prescription,
            notes=appointment.notes,
            follow_up=appointment.follow_up,
            payment_amount=appointment.payment_amount,
            payment_status=appointment.payment_status,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    phone: str | None = None
    profile: dict = Field(default_factory=dict)

    @classmethod
    def from_model(cls, user: User) -> 'UserResponse':
        profile: dict = {}
        if user.doctor_profile is not None:
            doctor = user.doctor_profile
            profile = {
                'specialization': doctor.specialization,
                'qualification': doctor.qualification,
                'experience': doctor.experience_years,
                'clinicName': doctor.clinic_name,
                'consultationFee': doctor.consultation_fee,
                'bio': doctor.bio,
                'licenseNumber': doctor.license_number,
                'videoConsultation': bool(doctor.video_consultation),
                'online': bool(doctor.online),
            }
        elif user.patient_profile is not None:
            patient = user.patient_profile
            profile = {
                'dateOfBirth': patient.date_of_birth.isoformat() if patient.date_of_birth else None,
                'gender': patient.gender,
                'bloodGroup': patient.blood_group,
                'emergencyContact': patient.emergency_contact,
            }
        return cls(id=user.id, name=user.name, email=user.email, role=user.role, phone=user.phone, profile=profile)
