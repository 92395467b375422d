"""
Password hashing and bearer token handling.

Passwords are hashed with bcrypt. Tokens are signed JWTs carrying the
user id (``sub``) and admin flag (``adm``).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from .config import Config
from .errors import AuthenticationError
from .models import UserData

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash a plaintext password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(user: UserData, config: Config) -> str:
    """Issue a signed token for a user."""
    expires = datetime.now(timezone.utc) + timedelta(minutes=config.jwt_expire_minutes)
    payload = {
        "sub": str(user.id),
        "adm": user.is_admin,
        "exp": expires,
    }
    return jwt.encode(payload, config.jwt_secret_key, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Config) -> Dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        AuthenticationError: If the token is expired, tampered with or malformed.
    """
    try:
        claims = jwt.decode(token, config.jwt_secret_key, algorithms=[config.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Your session has expired. Please login again")
    except JWTError:
        raise AuthenticationError("Please login to access this resource")

    if not str(claims.get("sub", "")).isdigit():
        raise AuthenticationError("Please login to access this resource")
    return claims
