import pytest
from fastapi import HTTPException

from haven.auth import admin_level_of, decode_access_token, has_admin_access
from haven.models import Profile

from .conftest import auth_headers, make_token


def test_decode_valid_token():
    claims = decode_access_token(make_token("user-1"))
    assert claims["sub"] == "user-1"


def test_expired_token_is_401():
    with pytest.raises(HTTPException) as exc:
        decode_access_token(make_token("user-1", expires_in=-60))
    assert exc.value.status_code == 401
    assert exc.value.headers["X-Token-Expired"] == "true"


def test_wrong_audience_is_401():
    with pytest.raises(HTTPException) as exc:
        decode_access_token(make_token("user-1", aud="somebody-else"))
    assert exc.value.status_code == 401


def test_malformed_token_is_401():
    with pytest.raises(HTTPException) as exc:
        decode_access_token("not-a-jwt")
    assert exc.value.status_code == 401


def test_missing_header_is_rejected(client):
    assert client.get("/profiles/me").status_code in (401, 403)


def test_first_request_creates_profile(client, db):
    token = make_token(
        "new-user-id",
        email="new@example.com",
        user_metadata={"family_name": "Okafor", "user_type": "teacher"},
    )
    response = client.get("/profiles/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "new-user-id"
    assert body["family_name"] == "Okafor"
    assert body["user_type"] == "teacher"
    assert body["completion_step"] == "about-you"
    assert db.query(Profile).filter(Profile.id == "new-user-id").count() == 1


def test_banned_profile_is_403(client, make_profile):
    banned = make_profile(is_banned=True)
    assert client.get("/profiles/me", headers=auth_headers(banned)).status_code == 403


def test_admin_levels():
    assert admin_level_of(Profile(is_admin=True, admin_level=None)) == "gold"
    assert admin_level_of(Profile(is_admin=False, admin_level="silver")) == "silver"
    assert admin_level_of(Profile(is_admin=False, admin_level=None)) is None
    assert has_admin_access(Profile(is_admin=False, admin_level="silver"), "bronze")
    assert not has_admin_access(Profile(is_admin=False, admin_level="bronze"), "silver")
