import os
import time
import uuid

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret-for-haven-tests"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("VAPID_PRIVATE_KEY", None)

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from haven import config, rate_limiter  # noqa: E402
from haven.database import Base, SessionLocal, engine  # noqa: E402
from haven.main import app  # noqa: E402
from haven.models import Profile  # noqa: E402


def make_token(user_id: str, email: str = None, expires_in: int = 3600, **claims) -> str:
    now = int(time.time())
    payload = {
        "sub": user_id,
        "aud": config.JWT_AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
        "email": email or f"{user_id[:8]}@example.com",
        **claims,
    }
    return jwt.encode(payload, config.SUPABASE_JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def auth_headers(profile_or_id) -> dict:
    user_id = getattr(profile_or_id, "id", profile_or_id)
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fake_redis():
    client = fakeredis.FakeRedis(decode_responses=True)
    rate_limiter.set_redis_client(client)
    yield client
    rate_limiter.set_redis_client(None)


@pytest.fixture(autouse=True)
def no_external_services(monkeypatch):
    """No real email, push or geocoding calls from tests"""
    monkeypatch.setattr(config, "RESEND_API_KEY", None)
    monkeypatch.setattr(config, "VAPID_PRIVATE_KEY", None)
    monkeypatch.setattr(config, "VAPID_PUBLIC_KEY", None)

    async def no_geocode(name):
        return None

    monkeypatch.setattr("haven.routes.profiles.geocode_suburb", no_geocode)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_profile(db):
    """Factory for seeded profiles; keyword arguments override the defaults"""

    def factory(**fields):
        profile_id = fields.pop("id", str(uuid.uuid4()))
        defaults = {
            "email": f"{profile_id[:8]}@example.com",
            "family_name": "Smith",
            "display_name": "Sam",
            "user_type": "family",
            "location_name": "Fitzroy",
            "kids_ages": [6, 9],
            "status": ["homeschooling"],
            "onboarding_complete": True,
        }
        defaults.update(fields)
        profile = Profile(id=profile_id, **defaults)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return factory
