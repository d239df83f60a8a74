"""Admin credentials, JWT bearer tokens and the subscription shared secret."""
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from zenpanel.config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(username: str, is_sudo: bool = False) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": username,
        "is_sudo": is_sudo,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None


def subscription_key_valid(key: str | None) -> bool:
    """True when no subscription password is configured or key matches it."""
    expected = settings.sub_password
    if not expected:
        return True
    return key is not None and hmac.compare_digest(key.encode("utf-8"), expected.encode("utf-8"))
