"""Legal appointment status transitions and who may trigger them.

``scheduled`` is the only non-terminal state. From it an appointment may move to
``completed``, ``no-show`` or ``cancelled``; cancelling additionally requires the
appointment to start at least ``cutoff_hours`` after ``now``.
"""

from datetime import datetime, timedelta

from clinic_api.core.errors import CancellationWindowError, ForbiddenError, InvalidTransitionError
from clinic_api.scheduling.types import TERMINAL_STATUSES, AppointmentState, AppointmentStatus, Role

DEFAULT_CUTOFF_HOURS = 24


def is_participant(appointment: AppointmentState, user_id: int) -> bool:
    return user_id in (appointment.doctor_id, appointment.patient_id)


def can_be_cancelled(appointment: AppointmentState, now: datetime, cutoff_hours: int = DEFAULT_CUTOFF_HOURS) -> bool:
    return (
        appointment.status == AppointmentStatus.SCHEDULED
        and appointment.date_time - now >= timedelta(hours=cutoff_hours)
    )


def authorize_status_change(
    appointment: AppointmentState,
    new_status: AppointmentStatus,
    acting_user_id: int,
    acting_role: Role,
    now: datetime,
    cutoff_hours: int = DEFAULT_CUTOFF_HOURS,
    admin_bypasses_cutoff: bool = True,
) -> None:
    """Raise if ``acting_user_id`` may not move ``appointment`` to ``new_status``."""
    new_status = AppointmentStatus(new_status)
    is_admin = Role(acting_role) == Role.ADMIN

    if not is_admin and not is_participant(appointment, acting_user_id):
        raise ForbiddenError()

    if new_status == AppointmentStatus.CANCELLED:
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise CancellationWindowError(
                f'Cannot cancel an appointment that is already {appointment.status.value}'
            )
        if not (is_admin and admin_bypasses_cutoff) and not can_be_cancelled(appointment, now, cutoff_hours):
            raise CancellationWindowError(
                f'Cannot cancel appointment less than {cutoff_hours} hours before scheduled time'
            )
        return

    if appointment.status in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            f'Appointment is already {appointment.status.value} and can no longer change status'
        )

    if new_status == AppointmentStatus.SCHEDULED:
        raise InvalidTransitionError('Appointment is already scheduled')
