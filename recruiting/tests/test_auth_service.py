"""
Unit tests for access-token verification.
"""

import jwt

from recruiting.services import auth_service


def test_token_round_trip():
    token = auth_service.create_access_token(7, "player")

    assert auth_service.verify_token(token) == {"user_id": 7, "role": "player"}


def test_expired_token_is_rejected():
    token = auth_service.create_access_token(7, "player", expires_minutes=-1)

    assert auth_service.verify_token(token) is None


def test_token_signed_with_another_secret_is_rejected():
    token = jwt.encode({"id": 7, "role": "player"}, "not-the-secret", algorithm="HS256")

    assert auth_service.verify_token(token) is None


def test_token_without_user_id_is_rejected():
    token = jwt.encode(
        {"role": "player"}, auth_service.JWT_ACCESS_SECRET, algorithm=auth_service.JWT_ALGORITHM
    )

    assert auth_service.verify_token(token) is None


def test_garbage_is_rejected():
    assert auth_service.verify_token("not-a-jwt") is None
