"""
Request payload schemas for the authentication endpoints.
"""
import re
from typing import Annotated, Literal, Optional
from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator

OTP_PATTERN = r'^\d{6}$'

Email = Annotated[EmailStr, AfterValidator(lambda v: v.strip().lower())]
OtpToken = Annotated[str, Field(pattern=OTP_PATTERN)]
SelfServiceRole = Literal['worker', 'recruiter', 'buyer']


def check_password_policy(value):
    if len(value) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if not re.search(r'[A-Z]', value):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', value):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'[0-9]', value):
        raise ValueError('Password must contain at least one number')
    if not re.search(r'[^A-Za-z0-9]', value):
        raise ValueError('Password must contain at least one special character')
    return value


class EmailRequest(BaseModel):
    email: Email


class VerifyRequest(BaseModel):
    email: Email
    name: Optional[str] = None


class OtpConfirmRequest(BaseModel):
    email: Email
    token: OtpToken


class RegisterRequest(BaseModel):
    email: Email
    password: str
    name: str = Field(..., min_length=1, max_length=120)
    role: SelfServiceRole = 'worker'
    token: OtpToken

    @field_validator('password')
    @classmethod
    def password_policy(cls, value):
        return check_password_policy(value)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    email: Email
    token: OtpToken
    new_password: str

    @field_validator('new_password')
    @classmethod
    def password_policy(cls, value):
        return check_password_policy(value)


class ResendOtpRequest(BaseModel):
    email: Email
    type: Literal['registration', 'password_reset']
