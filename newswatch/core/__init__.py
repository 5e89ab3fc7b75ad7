"""Core configuration and shared constants."""

from newswatch.core.config import Settings, get_settings
from newswatch.core.constants import (
    FLOW_KEYS,
    OTP_TYPE_RESET_PASSWORD,
    OTP_TYPE_VERIFICATION,
)

__all__ = [
    "Settings",
    "get_settings",
    "FLOW_KEYS",
    "OTP_TYPE_RESET_PASSWORD",
    "OTP_TYPE_VERIFICATION",
]
