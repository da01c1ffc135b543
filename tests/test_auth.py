"""Tests for password hashing and session tokens."""
import time

import jwt
import pytest

from planner_server.auth import ALGORITHM, hash_password, issue_token, read_token, verify_password
from planner_server.errors import AuthenticationError

SECRET = "s3cret-s3cret-s3cret-s3cret-s3cret"
OTHER_SECRET = "different-different-different-different"


def test_password_round_trip() -> None:
    encoded = hash_password("correct horse")

    assert encoded.startswith("$pbkdf2-sha256$")
    assert verify_password("correct horse", encoded)
    assert not verify_password("wrong horse", encoded)


def test_salt_makes_hashes_differ() -> None:
    assert hash_password("correct horse") != hash_password("correct horse")


def test_unknown_hash_format_never_verifies() -> None:
    assert not verify_password("anything", "plaintext")
    assert not verify_password("anything", "md5$1$salt$digest")


def test_token_carries_user_id() -> None:
    token = issue_token("user-1", secret=SECRET)

    assert read_token(token, secret=SECRET) == "user-1"
    assert jwt.decode(token, SECRET, algorithms=[ALGORITHM])["sub"] == "user-1"


def test_expired_token_rejected() -> None:
    token = issue_token("user-1", secret=SECRET, max_age=60, now=time.time() - 120)

    with pytest.raises(AuthenticationError, match="expired"):
        read_token(token, secret=SECRET)


def test_token_signed_with_other_secret_rejected() -> None:
    token = issue_token("user-1", secret=SECRET)

    with pytest.raises(AuthenticationError):
        read_token(token, secret=OTHER_SECRET)


@pytest.mark.parametrize("token", ["", "no-dot", "a.b.c", "payload.signature", "é.x", "é.é.é"])
def test_malformed_tokens_rejected(token: str) -> None:
    with pytest.raises(AuthenticationError, match="Invalid session token"):
        read_token(token, secret=SECRET)


def test_token_without_expiry_rejected() -> None:
    token = jwt.encode({"sub": "user-1"}, SECRET, algorithm=ALGORITHM)

    with pytest.raises(AuthenticationError):
        read_token(token, secret=SECRET)


def test_tampered_payload_rejected() -> None:
    header, _, signature = issue_token("user-1", secret=SECRET).split(".")
    forged_payload = issue_token("user-2", secret=SECRET).split(".")[1]

    with pytest.raises(AuthenticationError):
        read_token(f"{header}.{forged_payload}.{signature}", secret=SECRET)
