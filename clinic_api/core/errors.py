"""Error taxonomy raised by the scheduling core and mapped to HTTP by the app."""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Unexpected scheduling error.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ScheduleValidationError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid request.'


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class ConflictError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'This time slot is already booked'


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Not authorized to update this appointment'


class PolicyViolationError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'This change is not allowed.'


class CancellationWindowError(PolicyViolationError):
    default_message = 'Cannot cancel appointment less than 24 hours before scheduled time'


class InvalidTransitionError(PolicyViolationError):
    default_message = 'Appointment status can no longer be changed.'


class AuthenticationError(SchedulingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Invalid credentials'


class StorageError(SchedulingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Database unavailable. Verify DATABASE_URL and database credentials.'
