"""
Shared pytest fixtures for all tests.

Each test gets its own SQLite database file, a FastAPI TestClient bound to
it, and helpers to create profiles and sign access tokens so the real
authentication dependency runs.
"""

import os
import time
from datetime import date, timedelta
from typing import Callable, Optional

# Must be set before medibook modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SUPABASE_URL"] = "https://identity.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medibook.database import Base, engine_options, get_db
from medibook.main import app
from medibook.models import Doctor, Profile, generate_id

TEST_JWT_SECRET = "test-jwt-secret"


def future_date(days: int = 7) -> date:
    return date.today() + timedelta(days=days)


def make_token(user_id: str, expires_in: int = 3600, secret: str = TEST_JWT_SECRET, **claims) -> str:
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions (and threads) share one database"""
    url = f"sqlite:///{tmp_path / 'medibook_test.db'}"
    test_engine = create_engine(url, **engine_options(url))
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
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


# ============================================================================
# DATA FIXTURES
# ============================================================================


@pytest.fixture
def make_profile(db) -> Callable[..., Profile]:
    def _make(role: str = "patient", full_name: Optional[str] = None, phone: Optional[str] = None) -> Profile:
        user_id = generate_id()
        profile = Profile(
            id=user_id,
            email=f"{role}-{user_id[:8]}@example.com",
            full_name=full_name or f"Test {role.title()}",
            role=role,
            phone=phone,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_doctor(db, make_profile) -> Callable[..., Doctor]:
    def _make(
        full_name: str = "Dr. Asha Rao",
        specialization: str = "Cardiologist",
        is_active: bool = True,
        **fields,
    ) -> Doctor:
        profile = make_profile(role="doctor", full_name=full_name, phone="5550001111")
        doctor = Doctor(
            id=profile.id,
            specialization=specialization,
            experience_years=fields.get("experience_years", 10),
            consultation_fee=fields.get("consultation_fee", 800.0),
            rating=fields.get("rating", 4.5),
            is_active=is_active,
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make


@pytest.fixture
def doctor(make_doctor) -> Doctor:
    return make_doctor()


@pytest.fixture
def doctor_profile(db, doctor) -> Profile:
    return db.get(Profile, doctor.id)


@pytest.fixture
def patient(make_profile) -> Profile:
    return make_profile(role="patient", full_name="Priya Patel", phone="9876543210")


@pytest.fixture
def other_patient(make_profile) -> Profile:
    return make_profile(role="patient", full_name="Rahul Mehta")


@pytest.fixture
def admin(make_profile) -> Profile:
    return make_profile(role="admin", full_name="Site Admin")


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
