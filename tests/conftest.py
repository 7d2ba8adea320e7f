import itertools
import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_api.auth import jwt_handler  # noqa: E402
from clinic_api.database import Base  # noqa: E402
from clinic_api.models import appointment, notification  # noqa: E402,F401
from clinic_api.models.availability import AvailabilityWindow as AvailabilityWindowRow  # noqa: E402
from clinic_api.models.user import DoctorProfile, PatientProfile, User  # noqa: E402

# Monday 5 January 2026, 08:00.
FIXED_NOW = datetime(2026, 1, 5, 8, 0)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def engine():
    test_engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def skip_schema_migrations(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_api.routes.appointment_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def create_user(db):
    counter = itertools.count(1)

    def _create_user(role: str = 'patient', name: str | None = None, email: str | None = None) -> User:
        number = next(counter)
        user = User(
            name=name or f'{role.title()} {number}',
            email=email or f'{role}{number}@example.com',
            hashed_password='not-a-real-hash',
            role=role,
        )
        if role == 'doctor':
            user.doctor_profile = DoctorProfile(
                specialization='Cardiology',
                qualification='MD',
                experience_years=8,
                clinic_name='Main Street Clinic',
                consultation_fee=500.0,
                bio='Heart specialist.',
            )
        elif role == 'patient':
            user.patient_profile = PatientProfile()

        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create_user


@pytest.fixture
def create_doctor(db, create_user):
    def _create_doctor(windows=(), **kwargs) -> User:
        doctor = create_user(role='doctor', **kwargs)
        for window in windows:
            db.add(
                AvailabilityWindowRow(
                    doctor_id=doctor.id,
                    weekday=window.weekday.value,
                    start_time=window.start_time,
                    end_time=window.end_time,
                )
            )
        db.commit()
        return doctor

    return _create_doctor


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = jwt_handler.create_access_token(subject=str(user.id), role=user.role)
        return {'Authorization': f'Bearer {token}'}

    return _auth_headers


@pytest.fixture
def client(session_factory, now):
    from fastapi.testclient import TestClient

    from clinic_api.core.clock import get_clock
    from clinic_api.database import get_db
    from clinic_api.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: now)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
