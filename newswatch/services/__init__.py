from .auth import AuthService
from .countdown import Countdown, format_mmss
from .credential_store import CredentialStore
from .otp_flow import FlowNotice, FlowState, OtpFlowController, OtpPurpose, RecoveryAction, notice_for
from .session import RememberMe, SessionContext

__all__ = [
    "AuthService",
    "Countdown",
    "format_mmss",
    "CredentialStore",
    "FlowNotice",
    "FlowState",
    "OtpFlowController",
    "OtpPurpose",
    "RecoveryAction",
    "notice_for",
    "RememberMe",
    "SessionContext",
]
