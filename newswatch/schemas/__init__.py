"""Pydantic models for forms, backend results and the local data model."""

from newswatch.schemas.auth import (
    AuthResult,
    CodeForm,
    EmailForm,
    LoginForm,
    NewPasswordForm,
    PendingRegistration,
    ResetResult,
    SendCodeResult,
    SignupForm,
    UserProfile,
    VerifyResult,
    parse_form,
)

__all__ = [
    "AuthResult",
    "CodeForm",
    "EmailForm",
    "LoginForm",
    "NewPasswordForm",
    "PendingRegistration",
    "ResetResult",
    "SendCodeResult",
    "SignupForm",
    "UserProfile",
    "VerifyResult",
    "parse_form",
]
