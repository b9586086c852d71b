from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.schemas.unified import CamelModel


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    code: str


class ResendCodeRequest(BaseModel):
    email: EmailStr


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    name: str | None = None
    avatar: str | None = None


class UserResponse(BaseModel):
    """Public user view; secrets and verification state never leave the service."""

    model_config = {"from_attributes": True}

    id: str
    email: str
    name: str
    avatar: str | None = None
    verified: bool
    provider: str
    created_at: datetime
    updated_at: datetime


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class AuthResponse(CamelModel):
    token: str
    refresh_token: str
    user: UserResponse
