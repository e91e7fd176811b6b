from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime

from Login_module.User.user_model import UserRole


# Request schemas
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Asha Rao"])
    email: EmailStr = Field(..., examples=["asha@example.com"])
    password: str = Field(..., examples=["s3cret-pass"])
    phone: Optional[str] = Field(None, max_length=20, examples=["9876543210"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str


# Response schemas
class UserData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None


class TokenData(BaseModel):
    user: UserData
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(BaseModel):
    status: str = "success"
    message: str
    data: TokenData


class UserResponse(BaseModel):
    status: str = "success"
    message: str
    data: UserData


class MessageResponse(BaseModel):
    status: str = "success"
    message: str
