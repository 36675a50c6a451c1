import uuid
from datetime import timedelta

from app.core.security import (
    create_access_token, create_user_token, decode_access_token, get_password_hash, verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("secret123")

    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_verify_password_without_stored_hash():
    assert verify_password("secret123", None) is False


def test_user_token_carries_user_id():
    user_id = uuid.uuid4()

    assert decode_access_token(create_user_token(user_id)) == user_id


def test_decode_rejects_bad_tokens():
    assert decode_access_token("not-a-jwt") is None
    assert decode_access_token(create_access_token({"sub": "not-a-uuid"})) is None
    assert decode_access_token(create_access_token({"email": "x@example.com"})) is None


def test_decode_rejects_expired_token():
    token = create_access_token({"sub": str(uuid.uuid4())}, expires_delta=timedelta(seconds=-1))

    assert decode_access_token(token) is None
