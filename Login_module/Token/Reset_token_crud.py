"""
Password reset token operations - issue, validate/consume, and cleanup.

Only the SHA256 hash of a token is stored on the user row; the raw value
exists once, in the emailed link. Lifecycle per user:
NONE -> PENDING (issue) -> NONE (consume), or PENDING -> EXPIRED (detected
lazily at validation time) -> overwritten on the next issue.
"""
from datetime import timedelta
from typing import Optional, Tuple
import logging
import secrets

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import Settings
from Login_module.Utils import security
from Login_module.Utils.datetime_utils import now_ist
from Login_module.User.user_model import User
from Login_module.User.user_crud import get_user_by_email

logger = logging.getLogger(__name__)


class InvalidOrExpiredToken(Exception):
    """Token not found, expired, or already used. Deliberately one error for all three."""

    def __init__(self):
        super().__init__("Invalid or expired reset token")


class PasswordPolicyError(ValueError):
    pass


def check_password_policy(password: Optional[str], settings: Settings) -> None:
    if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
        raise PasswordPolicyError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )


def issue_reset_token(db: Session, user: User, settings: Settings) -> str:
    """
    Generate a reset token for the user and return the raw value.
    Any previously pending token for this user is overwritten.
    """
    raw_token = secrets.token_hex(settings.RESET_TOKEN_BYTES)

    user.reset_password_token = security.hash_value(raw_token)
    user.reset_password_expires = now_ist() + timedelta(seconds=settings.RESET_TOKEN_EXPIRY_SECONDS)
    db.commit()

    logger.info(f"Password reset token issued | User ID: {user.id} | Expires: {user.reset_password_expires}")
    return raw_token


def request_password_reset(db: Session, email: str, settings: Settings) -> Optional[Tuple[User, str]]:
    """
    Forgot-password flow.
    Returns (user, raw_token) when an active account exists, None otherwise.
    Callers must respond identically in both cases.
    """
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        # Same token work as a real issue on both paths
        security.hash_value(secrets.token_hex(settings.RESET_TOKEN_BYTES))
        logger.info("Password reset requested for unknown or inactive account")
        return None

    return user, issue_reset_token(db, user, settings)


def get_user_by_reset_token(db: Session, raw_token: str) -> Optional[User]:
    """
    Get the user whose stored hash matches and whose token has not expired.
    """
    if not raw_token:
        return None

    token_hash = security.hash_value(raw_token)
    return db.query(User).filter(
        User.reset_password_token == token_hash,
        User.reset_password_expires > now_ist(),
        User.is_active == True
    ).first()


def validate_and_consume(db: Session, raw_token: str, new_password: str, settings: Settings) -> User:
    """
    Reset the password with a raw token and invalidate the token.

    The password policy is checked before the token is looked up, so a weak
    password never burns a valid token. Raises PasswordPolicyError or
    InvalidOrExpiredToken.
    """
    check_password_policy(new_password, settings)

    user = get_user_by_reset_token(db, raw_token)
    if not user:
        raise InvalidOrExpiredToken()

    # Conditional on the hash still being present: two concurrent resets
    # with the same token cannot both succeed.
    token_hash = security.hash_value(raw_token)
    result = db.execute(
        update(User)
        .where(User.id == user.id, User.reset_password_token == token_hash)
        .values(
            password_hash=security.hash_password(new_password, rounds=settings.BCRYPT_ROUNDS),
            reset_password_token=None,
            reset_password_expires=None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidOrExpiredToken()

    db.commit()
    db.refresh(user)

    logger.info(f"Password reset successful | User ID: {user.id}")
    return user


def clear_expired_reset_tokens(db: Session) -> int:
    """
    Null out expired reset tokens (storage hygiene only).
    Returns the number of users cleaned up.
    """
    result = db.execute(
        update(User)
        .where(
            User.reset_password_token.isnot(None),
            User.reset_password_expires <= now_ist()
        )
        .values(reset_password_token=None, reset_password_expires=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    count = result.rowcount or 0
    if count > 0:
        logger.info(f"Cleaned up {count} expired password reset token(s)")
    return count
