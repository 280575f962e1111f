"""Tests for JWT auth and caller identity."""

from __future__ import annotations

import time

import jwt
import pytest
from fastapi import HTTPException

from evidence_engine.api.auth import caller_for_key, get_caller_id


def test_jwt_encode_decode():
    secret = "test-secret"
    payload = {"sub": "alice", "iat": int(time.time()), "exp": int(time.time()) + 3600}
    token = jwt.encode(payload, secret, algorithm="HS256")
    decoded = jwt.decode(token, secret, algorithms=["HS256"])
    assert decoded["sub"] == "alice"


def test_jwt_expired():
    secret = "test-secret"
    payload = {"sub": "alice", "iat": int(time.time()) - 7200, "exp": int(time.time()) - 3600}
    token = jwt.encode(payload, secret, algorithm="HS256")
    with pytest.raises(jwt.ExpiredSignatureError):
        jwt.decode(token, secret, algorithms=["HS256"])


def test_caller_for_key_is_stable_and_opaque():
    assert caller_for_key("secret-key") == caller_for_key("secret-key")
    assert caller_for_key("secret-key") != caller_for_key("other-key")
    assert "secret-key" not in caller_for_key("secret-key")


async def test_get_caller_id_uses_subject():
    assert await get_caller_id({"sub": "alice"}) == "alice"


async def test_get_caller_id_requires_subject():
    with pytest.raises(HTTPException) as exc:
        await get_caller_id({})
    assert exc.value.status_code == 401
