from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging

from Login_module.Utils import security
from .user_model import User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """
    Retrieve user by ID.
    """
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Retrieve user by email (case-insensitive).
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    role: UserRole = UserRole.USER,
    bcrypt_rounds: int = 12
) -> User:
    """
    Create a new user with a bcrypt-hashed password.
    Raises ValueError if the email is already registered.
    """
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ValueError("User already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=security.hash_password(password, rounds=bcrypt_rounds),
        phone=phone,
        role=role
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("User already exists")
    db.refresh(user)
    logger.info(f"User registered | User ID: {user.id}")
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Return the user if the credentials match, otherwise None.
    Unknown email and wrong password are indistinguishable to the caller.
    """
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not security.verify_password(password, user.password_hash):
        return None
    return user


def change_password(
    db: Session,
    user: User,
    current_password: str,
    new_password: str,
    bcrypt_rounds: int = 12
) -> bool:
    """
    Change password after verifying the current one.
    Returns False if the current password does not match.
    """
    if not security.verify_password(current_password, user.password_hash):
        return False

    user.password_hash = security.hash_password(new_password, rounds=bcrypt_rounds)
    db.commit()
    logger.info(f"Password changed | User ID: {user.id}")
    return True


def update_profile(
    db: Session,
    user: User,
    name: Optional[str] = None,
    phone: Optional[str] = None
) -> User:
    # Update only provided fields
    if name is not None:
        user.name = name.strip()
    if phone is not None:
        user.phone = phone
    db.commit()
    db.refresh(user)
    return user
