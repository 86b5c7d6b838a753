from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from core.config import settings
from core.errors import AuthenticationError
from core.security import bearer_from_header, create_access_token, verify_access_token


def test_verify_access_token_returns_user_id():
    token = create_access_token(4200001)
    assert verify_access_token(token) == 4200001


def test_missing_token_is_reported_as_missing():
    with pytest.raises(AuthenticationError) as exc:
        verify_access_token(None)
    assert exc.value.code == "TOKEN_MISSING"

    with pytest.raises(AuthenticationError) as exc:
        verify_access_token("")
    assert exc.value.code == "TOKEN_MISSING"


def test_expired_token_is_distinguished_from_invalid():
    token = create_access_token(4200001, expires_delta=timedelta(minutes=-1))

    with pytest.raises(AuthenticationError) as exc:
        verify_access_token(token)

    assert exc.value.code == "TOKEN_EXPIRED"
    assert exc.value.status_code == 401


def test_token_signed_with_other_secret_is_invalid():
    payload = {"user_id": 4200001, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    token = jwt.encode(payload, "not-the-secret", algorithm=settings.JWT_ALGORITHM)

    with pytest.raises(AuthenticationError) as exc:
        verify_access_token(token)
    assert exc.value.code == "TOKEN_INVALID"


def test_garbage_token_is_invalid():
    with pytest.raises(AuthenticationError) as exc:
        verify_access_token("definitely.not.a-jwt")
    assert exc.value.code == "TOKEN_INVALID"


def test_token_without_integer_user_id_is_invalid():
    payload = {"user_id": "42", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    with pytest.raises(AuthenticationError) as exc:
        verify_access_token(token)
    assert exc.value.code == "TOKEN_INVALID"


def test_bearer_from_header():
    assert bearer_from_header("Bearer abc.def") == "abc.def"
    assert bearer_from_header("Basic abc") is None
    assert bearer_from_header("Bearer ") is None
    assert bearer_from_header(None) is None
