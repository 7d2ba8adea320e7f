from datetime import datetime, timedelta, timezone

import pytest

from clinic_api.core.errors import (
    CancellationWindowError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleValidationError,
)
from clinic_api.models.appointment import Appointment
from clinic_api.scheduling.schedule_parser import parse_schedule
from clinic_api.scheduling.types import AppointmentStatus, AppointmentType, Role, SlotStatus
from clinic_api.services import appointment_service


@pytest.fixture
def doctor(create_doctor):
    return create_doctor(windows=parse_schedule('Mon-Fri 9-5'))


@pytest.fixture
def patient(create_user):
    return create_user(role='patient')


@pytest.fixture
def book(db, doctor, patient, now):
    def _book(date_time: datetime, patient_id: int | None = None, **kwargs) -> Appointment:
        return appointment_service.create_appointment(
            db,
            doctor_id=kwargs.pop('doctor_id', doctor.id),
            patient_id=patient_id or patient.id,
            date_time=date_time,
            appointment_type=kwargs.pop('appointment_type', AppointmentType.IN_PERSON),
            symptoms=kwargs.pop('symptoms', 'Headache'),
            payment_amount=kwargs.pop('payment_amount', 500.0),
            now=kwargs.pop('now', now),
            **kwargs,
        )

    return _book


def test_create_appointment_records_scheduled_booking(book, doctor, patient) -> None:
    appointment = book(datetime(2026, 1, 6, 10, 0), notes='Bring previous reports')

    assert appointment.id is not None
    assert appointment.doctor_id == doctor.id
    assert appointment.patient_id == patient.id
    assert appointment.status == 'scheduled'
    assert appointment.appointment_type == 'in-person'
    assert appointment.duration_minutes == 30
    assert appointment.payment_status == 'pending'
    assert appointment.notes == 'Bring previous reports'


def test_create_appointment_truncates_seconds(book) -> None:
    appointment = book(datetime(2026, 1, 6, 10, 0, 42, 1000))

    assert appointment.date_time == datetime(2026, 1, 6, 10, 0)


def test_create_appointment_converts_aware_datetime_to_local_time(book) -> None:
    requested = datetime(2026, 1, 7, 11, 0).astimezone().astimezone(timezone.utc)

    appointment = book(requested)

    assert appointment.date_time == datetime(2026, 1, 7, 11, 0)


def test_second_booking_of_same_slot_is_rejected(book, create_user) -> None:
    book(datetime(2026, 1, 6, 10, 0))
    other_patient = create_user(role='patient')

    with pytest.raises(ConflictError) as exc_info:
        book(datetime(2026, 1, 6, 10, 0), patient_id=other_patient.id)

    assert exc_info.value.message == 'This time slot is already booked'


def test_unique_index_rejects_double_booking_when_precheck_is_bypassed(
    db,
    book,
    doctor,
    create_user,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    slot = datetime(2026, 1, 6, 10, 0)
    book(slot)
    other_patient = create_user(role='patient')

    real_find = appointment_service.find_active_appointment
    calls = []

    def find_after_first_call(session, doctor_id, date_time):
        calls.append(date_time)
        if len(calls) == 1:
            return None
        return real_find(session, doctor_id, date_time)

    monkeypatch.setattr(appointment_service, 'find_active_appointment', find_after_first_call)

    with pytest.raises(ConflictError):
        book(slot, patient_id=other_patient.id)

    assert db.query(Appointment).filter(Appointment.doctor_id == doctor.id).count() == 1


def test_cancelled_slot_can_be_booked_again(db, book, patient, now) -> None:
    slot = datetime(2026, 1, 8, 10, 0)
    first = book(slot)
    appointment_service.change_status(db, first.id, AppointmentStatus.CANCELLED, patient.id, Role.PATIENT, now)

    second = book(slot)

    assert second.id != first.id
    assert second.status == 'scheduled'


def test_booking_unknown_doctor_is_not_found(book, create_user) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        book(datetime(2026, 1, 6, 10, 0), doctor_id=9999)
    assert exc_info.value.message == 'Doctor not found'

    not_a_doctor = create_user(role='patient')
    with pytest.raises(NotFoundError):
        book(datetime(2026, 1, 6, 10, 0), doctor_id=not_a_doctor.id)


def test_booking_in_the_past_is_rejected(book) -> None:
    with pytest.raises(ScheduleValidationError):
        book(datetime(2026, 1, 5, 7, 30))


def test_booking_outside_availability_is_rejected(book) -> None:
    # Saturday is not part of the weekly template.
    with pytest.raises(ScheduleValidationError) as exc_info:
        book(datetime(2026, 1, 10, 10, 0))
    assert exc_info.value.message == 'Doctor is not available at the requested time'

    with pytest.raises(ScheduleValidationError):
        book(datetime(2026, 1, 6, 17, 0))


def test_booking_between_slot_starts_is_rejected(book) -> None:
    with pytest.raises(ScheduleValidationError) as exc_info:
        book(datetime(2026, 1, 6, 9, 10))
    assert exc_info.value.message == 'Doctor is not available at the requested time'

    assert book(datetime(2026, 1, 6, 9, 0)).status == 'scheduled'
    assert book(datetime(2026, 1, 6, 9, 30)).status == 'scheduled'


def test_strict_overlap_rejects_booking_inside_a_longer_one(book, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_api.core.config.STRICT_SLOT_OVERLAP', True)
    book(datetime(2026, 1, 6, 9, 0), duration_minutes=60)

    with pytest.raises(ConflictError):
        book(datetime(2026, 1, 6, 9, 30))

    assert book(datetime(2026, 1, 6, 10, 0)).status == 'scheduled'


def test_exact_start_matching_allows_booking_inside_a_longer_one(book) -> None:
    book(datetime(2026, 1, 6, 9, 0), duration_minutes=60)

    assert book(datetime(2026, 1, 6, 9, 30)).status == 'scheduled'


def test_booking_outside_availability_allowed_when_not_enforced(book, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_api.core.config.ENFORCE_AVAILABILITY_WINDOWS', False)

    appointment = book(datetime(2026, 1, 10, 10, 0))

    assert appointment.status == 'scheduled'


def test_patient_cancels_well_ahead(db, book, patient, now) -> None:
    appointment = book(datetime(2026, 1, 7, 10, 0))

    updated = appointment_service.change_status(
        db,
        appointment.id,
        AppointmentStatus.CANCELLED,
        patient.id,
        Role.PATIENT,
        now,
    )

    assert updated.status == 'cancelled'
    assert updated.updated_at == now


def test_patient_cannot_cancel_inside_cutoff(db, book, patient, now) -> None:
    appointment = book(datetime(2026, 1, 5, 14, 0))

    with pytest.raises(CancellationWindowError):
        appointment_service.change_status(
            db,
            appointment.id,
            AppointmentStatus.CANCELLED,
            patient.id,
            Role.PATIENT,
            now,
        )

    db.expire_all()
    assert appointment_service.get_appointment(db, appointment.id).status == 'scheduled'


def test_stranger_cannot_change_status(db, book, create_user, now) -> None:
    appointment = book(datetime(2026, 1, 7, 10, 0))
    stranger = create_user(role='patient')

    with pytest.raises(ForbiddenError):
        appointment_service.change_status(
            db,
            appointment.id,
            AppointmentStatus.CANCELLED,
            stranger.id,
            Role.PATIENT,
            now,
        )


def test_doctor_completes_then_cannot_reopen(db, book, doctor, now) -> None:
    appointment = book(datetime(2026, 1, 5, 9, 0))
    later = datetime(2026, 1, 5, 10, 0)

    appointment_service.change_status(db, appointment.id, AppointmentStatus.COMPLETED, doctor.id, Role.DOCTOR, later)

    with pytest.raises(InvalidTransitionError):
        appointment_service.change_status(
            db,
            appointment.id,
            AppointmentStatus.NO_SHOW,
            doctor.id,
            Role.DOCTOR,
            later,
        )


def test_status_change_loses_to_concurrent_writer(
    db,
    session_factory,
    book,
    patient,
    now,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    appointment = book(datetime(2026, 1, 7, 10, 0))
    real_get = appointment_service.get_appointment

    def get_then_complete_elsewhere(session, appointment_id):
        loaded = real_get(session, appointment_id)
        assert loaded.status == 'scheduled'

        other = session_factory()
        try:
            other.query(Appointment).filter(Appointment.id == appointment_id).update(
                {Appointment.status: 'completed'},
                synchronize_session=False,
            )
            other.commit()
        finally:
            other.close()
        return loaded

    monkeypatch.setattr(appointment_service, 'get_appointment', get_then_complete_elsewhere)

    with pytest.raises(InvalidTransitionError) as exc_info:
        appointment_service.change_status(
            db,
            appointment.id,
            AppointmentStatus.CANCELLED,
            patient.id,
            Role.PATIENT,
            now,
        )

    assert exc_info.value.message == 'Appointment status was changed by another request'
    db.expire_all()
    assert real_get(db, appointment.id).status == 'completed'


def test_change_status_of_missing_appointment(db, patient, now) -> None:
    with pytest.raises(NotFoundError):
        appointment_service.change_status(db, 404, AppointmentStatus.CANCELLED, patient.id, Role.PATIENT, now)


def test_doctor_slots_mark_scheduled_bookings(db, book, doctor, now) -> None:
    book(datetime(2026, 1, 6, 10, 0))
    cancelled = book(datetime(2026, 1, 6, 11, 0))
    appointment_service.change_status(db, cancelled.id, AppointmentStatus.CANCELLED, doctor.id, Role.DOCTOR, now)

    slots = appointment_service.get_doctor_slots(db, doctor.id, now)

    # Monday through the following Monday, weekdays only, 16 half-hour slots a day.
    assert len(slots) == 6 * 16
    booked = [slot.start for slot in slots if slot.status is SlotStatus.BOOKED]
    assert booked == [datetime(2026, 1, 6, 10, 0)]


def test_doctor_slots_for_doctor_without_windows(db, create_doctor, now) -> None:
    doctor = create_doctor()

    assert appointment_service.get_doctor_slots(db, doctor.id, now) == []


def test_doctor_availability_returns_template_and_upcoming_bookings(db, book, doctor, now) -> None:
    book(datetime(2026, 1, 6, 10, 0), duration_minutes=45)

    windows, booked = appointment_service.get_doctor_availability(db, doctor.id, now)

    assert len(windows) == 5
    assert [(slot.date_time, slot.duration_minutes) for slot in booked] == [(datetime(2026, 1, 6, 10, 0), 45)]


def test_list_user_appointments_by_role(db, book, doctor, patient, create_user) -> None:
    first = book(datetime(2026, 1, 6, 10, 0))
    second = book(datetime(2026, 1, 7, 10, 0))
    other_patient = create_user(role='patient')
    book(datetime(2026, 1, 8, 10, 0), patient_id=other_patient.id)

    patient_view = appointment_service.list_user_appointments(db, patient.id, Role.PATIENT)
    doctor_view = appointment_service.list_user_appointments(db, doctor.id, Role.DOCTOR)

    assert [appointment.id for appointment in patient_view] == [second.id, first.id]
    assert len(doctor_view) == 3


def test_upcoming_appointments_skip_past_and_cancelled(db, book, doctor, now) -> None:
    book(datetime(2026, 1, 5, 9, 0))
    upcoming = book(datetime(2026, 1, 9, 9, 0))
    cancelled = book(datetime(2026, 1, 8, 9, 0))
    appointment_service.change_status(db, cancelled.id, AppointmentStatus.CANCELLED, doctor.id, Role.DOCTOR, now)

    later = now + timedelta(hours=2)
    results = appointment_service.get_doctor_upcoming_appointments(db, doctor.id, later)

    assert [appointment.id for appointment in results] == [upcoming.id]
