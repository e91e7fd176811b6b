"""
Token module - single-use password reset tokens.
"""
from .Reset_token_crud import (
    InvalidOrExpiredToken,
    PasswordPolicyError,
    issue_reset_token,
    request_password_reset,
    validate_and_consume,
    clear_expired_reset_tokens
)

__all__ = [
    "InvalidOrExpiredToken",
    "PasswordPolicyError",
    "issue_reset_token",
    "request_password_reset",
    "validate_and_consume",
    "clear_expired_reset_tokens",
]
