from datetime import timedelta
from typing import Dict, Any, Optional
import hashlib

import bcrypt
import jwt
from fastapi import HTTPException

from config import Settings
from .datetime_utils import now_ist


def create_access_token(settings: Settings, data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """
    Creates a JWT access token with expiration timestamp.
    """
    to_encode = data.copy()
    expire = now_ist() + timedelta(
        seconds=(expires_delta or settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    """
    Decodes and validates JWT access token.
    Raises HTTPException for invalid or expired tokens.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def hash_value(value: str) -> str:
    """
    Returns SHA256 hex digest of a given plain text.
    Used for password reset tokens, which are stored only in hashed form.
    """
    return hashlib.sha256(value.encode()).hexdigest()


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False
