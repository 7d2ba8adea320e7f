"""Data contracts shared by the slot generator, booking flow and status guard."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum


class Weekday(str, Enum):
    MONDAY = 'Monday'
    TUESDAY = 'Tuesday'
    WEDNESDAY = 'Wednesday'
    THURSDAY = 'Thursday'
    FRIDAY = 'Friday'
    SATURDAY = 'Saturday'
    SUNDAY = 'Sunday'

    @classmethod
    def for_date(cls, value: date) -> 'Weekday':
        return WEEKDAYS[value.weekday()]


WEEKDAYS = list(Weekday)


class Role(str, Enum):
    PATIENT = 'patient'
    DOCTOR = 'doctor'
    ADMIN = 'admin'


class AppointmentStatus(str, Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no-show'


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)


class AppointmentType(str, Enum):
    IN_PERSON = 'in-person'
    VIDEO_CONSULTATION = 'video-consultation'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    REFUNDED = 'refunded'


class SlotStatus(str, Enum):
    FREE = 'Free'
    BOOKED = 'Booked'


@dataclass(frozen=True)
class AvailabilityWindow:
    """A recurring weekly range during which a doctor accepts bookings."""

    weekday: Weekday
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        object.__setattr__(self, 'weekday', Weekday(self.weekday))
        if self.start_time >= self.end_time:
            raise ValueError(
                f'{self.weekday.value} window must start before it ends '
                f'({self.start_time:%H:%M}-{self.end_time:%H:%M}).'
            )

    def contains(self, moment: datetime) -> bool:
        return (
            Weekday.for_date(moment.date()) == self.weekday
            and self.start_time <= moment.time() < self.end_time
        )

    def offers(self, moment: datetime, slot_interval_minutes: int) -> bool:
        """True when a slot of this window starts exactly at ``moment``."""
        if not self.contains(moment):
            return False
        offset = moment - datetime.combine(moment.date(), self.start_time)
        return offset % timedelta(minutes=slot_interval_minutes) == timedelta(0)


@dataclass(frozen=True)
class BookedSlot:
    date_time: datetime
    duration_minutes: int = 30


@dataclass(frozen=True)
class Slot:
    date: date
    time: time
    status: SlotStatus

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, self.time)


@dataclass(frozen=True)
class AppointmentState:
    """The part of an appointment the status guard decides on."""

    doctor_id: int
    patient_id: int
    date_time: datetime
    status: AppointmentStatus

    def __post_init__(self) -> None:
        object.__setattr__(self, 'status', AppointmentStatus(self.status))
