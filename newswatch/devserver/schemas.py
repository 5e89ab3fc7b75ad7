from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator


class EmailIn(BaseModel):
    email: EmailStr


class VerifyOtpIn(BaseModel):
    email: EmailStr
    otp: str


class ResendOtpIn(BaseModel):
    email: EmailStr
    type: Literal["verification", "reset_password"] = "verification"


class ResetPasswordIn(BaseModel):
    email: EmailStr
    otp: str
    new_password: str = Field(alias="newPassword")


class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    password: str
    phone: str | None = None
    role: Literal["visitor", "reporter"] = "visitor"

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        return value


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
