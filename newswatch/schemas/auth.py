import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, ValidationInfo, field_validator

from newswatch.core import get_settings
from newswatch.errors import FormValidationError

_OTP_RE = re.compile(r"^\d+$")

_FIELD_MESSAGES = {
    "name": "Please enter your name",
    "email": "Please enter a valid email address",
    "phone": "Please enter a valid phone number",
    "password": "Please enter your password",
    "role": "Please select your user type",
    "new_password": "Please enter new password",
    "confirm_password": "Please confirm your password",
    "code": "Please enter all 6 digits of the OTP",
}


def _normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class UserProfile(BaseModel):
    """Denormalized profile snapshot kept with the session for display."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str | None = None
    email: str | None = None
    role: str = "visitor"
    profile_image: str | None = Field(default=None, alias="profileImage")
    phone: str | None = None
    location: str | None = None
    bio: str | None = None
    is_verified: bool = Field(default=False, alias="isVerified")


class PendingRegistration(BaseModel):
    """Signup payload held locally until the email is verified, then sent to register."""

    name: str
    email: str
    password: str
    phone: str
    role: Literal["visitor", "reporter"] = "visitor"


class SignupForm(BaseModel):
    name: str
    email: EmailStr
    phone: str
    password: str
    role: Literal["visitor", "reporter"] | None = Field(default=None, validate_default=True)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return _normalize_email(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter your name")
        return value

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter your phone number")
        if len(value) < get_settings().min_phone_length:
            raise ValueError("Please enter a valid phone number")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter your password")
        min_len = get_settings().min_password_length
        if len(value) < min_len:
            raise ValueError(f"Password must be at least {min_len} characters long")
        return value

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str | None) -> str:
        if not value:
            raise ValueError("Please select your user type")
        return value

    def to_pending(self) -> PendingRegistration:
        return PendingRegistration(
            name=self.name,
            email=str(self.email),
            password=self.password,
            phone=self.phone,
            role=self.role or "visitor",
        )


class LoginForm(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter your password")
        return value


class EmailForm(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return _normalize_email(value)


class CodeForm(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        length = get_settings().otp_length
        if len(value) != length:
            raise ValueError(f"Please enter all {length} digits of the OTP")
        if not _OTP_RE.match(value):
            raise ValueError(f"OTP must be {length} digits")
        return value


class NewPasswordForm(BaseModel):
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Please enter new password")
        min_len = get_settings().min_password_length
        if len(value) < min_len:
            raise ValueError(f"Password must be at least {min_len} characters long")
        return value

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise ValueError("Please confirm your password")
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Passwords do not match")
        return value


def parse_form(model: type[BaseModel], **data: Any) -> Any:
    """Validate form input; raise FormValidationError with the first readable message."""
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        ctx = first.get("ctx") or {}
        field = str(first["loc"][0]) if first.get("loc") else ""
        if "error" in ctx:
            message = str(ctx["error"])
        else:
            message = _FIELD_MESSAGES.get(field, first.get("msg", "Invalid input"))
        raise FormValidationError(message, cause=e) from e


class SendCodeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(default=False, alias="success")
    message: str | None = None
    dev_code: str | None = Field(default=None, alias="otp")
    expires_in: int | None = Field(default=None, alias="expiresIn")


class VerifyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(default=False, alias="success")
    message: str | None = None
    requires_finalization: bool = Field(default=False, alias="requiresSignup")
    token: str | None = None
    user: UserProfile | None = None


class AuthResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(default=False, alias="success")
    message: str | None = None
    token: str
    user: UserProfile


class ResetResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(default=False, alias="success")
    message: str | None = None
    token: str | None = None
    user: UserProfile | None = None
