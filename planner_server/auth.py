"""
Credential hashing and signed session tokens.

Passwords are hashed through a passlib `CryptContext`. A session token is an
HS256 JWT carrying the user id in `sub` and its expiry in `exp`.
"""
from __future__ import annotations

import time
import typing as t

import jwt
from passlib.context import CryptContext

from planner_server import config
from planner_server.errors import AuthenticationError

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check `password` against a stored hash; unknown hash formats never match."""
    try:
        return pwd_context.verify(password, encoded)
    except ValueError:
        return False


def issue_token(
        user_id: str,
        secret: t.Optional[str] = None,
        max_age: t.Optional[int] = None,
        now: t.Optional[float] = None,
) -> str:
    """Create a signed session token for `user_id`."""
    secret = secret or config.SECRET_KEY
    max_age = config.SESSION_MAX_AGE if max_age is None else max_age
    issued = time.time() if now is None else now
    payload = {"sub": user_id, "iat": int(issued), "exp": int(issued + max_age)}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def read_token(token: str, secret: t.Optional[str] = None) -> str:
    """
    Verify a session token and return the user id it carries.

    :raises AuthenticationError: If the token is malformed, tampered with or expired.
    """
    secret = secret or config.SECRET_KEY
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid session token")
    return str(claims["sub"])
