"""Password hashing and access tokens for administrators."""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from result_portal.utils.config import AuthConfig


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with bcrypt."""
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(admin_id: int, email: str, config: AuthConfig) -> str:
    """Issue a signed token identifying an administrator.

    Args:
        admin_id: Surrogate id of the administrator.
        email: Administrator email, echoed in the payload.
        config: Signing secret, algorithm, and lifetime.

    Returns:
        Encoded JWT.
    """
    expire = datetime.now(timezone.utc) + timedelta(hours=config.token_expire_hours)
    payload = {"adminId": admin_id, "email": email, "exp": expire}
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_token(token: str, config: AuthConfig) -> dict[str, Any] | None:
    """Decode a token, returning ``None`` when it is invalid or expired."""
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError:
        return None
    if not isinstance(payload.get("adminId"), int):
        return None
    return payload
