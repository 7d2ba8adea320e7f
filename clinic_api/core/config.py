import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

SLOT_HORIZON_DAYS = int(os.getenv("SLOT_HORIZON_DAYS", "7"))
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))
DEFAULT_APPOINTMENT_DURATION_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "30"))
CANCELLATION_CUTOFF_HOURS = int(os.getenv("CANCELLATION_CUTOFF_HOURS", "24"))

# Admins may cancel inside the cutoff window.
ADMIN_BYPASSES_CANCELLATION_CUTOFF = _get_bool(os.getenv("ADMIN_BYPASSES_CANCELLATION_CUTOFF"), default=True)
ENFORCE_AVAILABILITY_WINDOWS = _get_bool(os.getenv("ENFORCE_AVAILABILITY_WINDOWS"), default=True)
# Off: a slot is Booked only when a booking starts at the same date, hour and minute.
# On: any booking whose duration covers a slot marks it Booked, and booking into it is a conflict.
# The unique index still only covers exact start times.
STRICT_SLOT_OVERLAP = _get_bool(os.getenv("STRICT_SLOT_OVERLAP"), default=False)

MAX_SYMPTOMS_LENGTH = 2000
MAX_SEARCH_RESULTS = 50


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    numeric_settings = {
        "SLOT_HORIZON_DAYS": SLOT_HORIZON_DAYS,
        "SLOT_INTERVAL_MINUTES": SLOT_INTERVAL_MINUTES,
        "DEFAULT_APPOINTMENT_DURATION_MINUTES": DEFAULT_APPOINTMENT_DURATION_MINUTES,
        "CANCELLATION_CUTOFF_HOURS": CANCELLATION_CUTOFF_HOURS,
        "JWT_EXPIRES_MINUTES": JWT_EXPIRES_MINUTES,
    }
    for name, value in numeric_settings.items():
        if value <= 0:
            raise RuntimeError(f"{name} must be a positive integer.")
