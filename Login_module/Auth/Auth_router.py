from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from config import Settings
from deps import get_db, get_settings, get_dispatcher
from Notification_module.dispatcher import EmailDispatcher
from ..Utils import security
from ..Utils.auth_user import get_current_user
from ..User import user_crud
from ..User.user_model import User
from ..Token import Reset_token_crud
from ..Token.Reset_token_crud import InvalidOrExpiredToken, PasswordPolicyError
from .Auth_schema import (
    RegisterRequest,
    LoginRequest,
    UpdateProfileRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UserData,
    TokenData,
    AuthResponse,
    UserResponse,
    MessageResponse
)

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If that email is registered, a reset link has been sent."

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User, settings: Settings, message: str) -> AuthResponse:
    access_token = security.create_access_token(
        settings,
        {"sub": str(user.id), "role": user.role.value}
    )
    return AuthResponse(
        message=message,
        data=TokenData(
            user=UserData.model_validate(user),
            access_token=access_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_SECONDS
        )
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: EmailDispatcher = Depends(get_dispatcher)
):
    """
    Register a new account and return an access token.
    """
    try:
        Reset_token_crud.check_password_policy(request.password, settings)
        user = user_crud.create_user(
            db,
            name=request.name,
            email=request.email,
            password=request.password,
            phone=request.phone,
            bcrypt_rounds=settings.BCRYPT_ROUNDS
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    dispatcher.send_welcome(background_tasks, user)
    return _token_response(user, settings, "Registration successful")


@router.post("/login", response_model=AuthResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    user = user_crud.authenticate_user(db, request.email, request.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    logger.info(f"User logged in | User ID: {user.id}")
    return _token_response(user, settings, "Login successful")


@router.get("/me", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse(message="Profile fetched", data=UserData.model_validate(current_user))


@router.put("/me", response_model=UserResponse)
def update_profile(
    request: UpdateProfileRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user = user_crud.update_profile(db, current_user, name=request.name, phone=request.phone)
    return UserResponse(message="Profile updated successfully", data=UserData.model_validate(user))


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    request: ChangePasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user)
):
    try:
        Reset_token_crud.check_password_policy(request.new_password, settings)
    except PasswordPolicyError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    changed = user_crud.change_password(
        db,
        current_user,
        request.current_password,
        request.new_password,
        bcrypt_rounds=settings.BCRYPT_ROUNDS
    )
    if not changed:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    return MessageResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: EmailDispatcher = Depends(get_dispatcher)
):
    """
    Issue a password reset token and email the reset link.
    The response is identical whether or not the email is registered.
    """
    issued = Reset_token_crud.request_password_reset(db, request.email, settings)
    if issued:
        user, raw_token = issued
        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{raw_token}"
        dispatcher.send_password_reset(background_tasks, user, reset_url)

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    request: ResetPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    try:
        Reset_token_crud.validate_and_consume(db, token, request.password, settings)
    except PasswordPolicyError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InvalidOrExpiredToken:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    return MessageResponse(message="Password reset successful. You can now log in.")
