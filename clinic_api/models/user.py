"""User model definitions.

A user row carries what every role shares. Role specific data lives in exactly
one of ``doctor_profiles`` or ``patient_profiles``.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from clinic_api.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="patient")  # patient/doctor/admin
    phone = Column(String)
    created_at = Column(DateTime, default=datetime.now)

    doctor_profile = relationship(
        "DoctorProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    patient_profile = relationship(
        "PatientProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    specialization = Column(String, nullable=False, index=True)
    qualification = Column(String, nullable=False)
    experience_years = Column(Integer, nullable=False)
    clinic_name = Column(String, nullable=False)
    consultation_fee = Column(Float, nullable=False)
    bio = Column(Text, nullable=False)
    license_number = Column(String)
    video_consultation = Column(Boolean, default=False)
    online = Column(Boolean, default=False)

    user = relationship("User", back_populates="doctor_profile")


class PatientProfile(Base):
    __tablename__ = "patient_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    date_of_birth = Column(Date)
    gender = Column(String)
    blood_group = Column(String)
    emergency_contact = Column(String)

    user = relationship("User", back_populates="patient_profile")
