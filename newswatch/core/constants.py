"""Shared client constants."""

# Credential store keys
TOKEN_KEY = "userToken"
USER_KEY = "userData"
PENDING_REGISTRATION_KEY = "signupData"
PENDING_EMAIL_KEY = "pendingEmail"
DEV_CODE_KEY = "devOtp"
REMEMBERED_EMAIL_KEY = "rememberedEmail"
REMEMBERED_PASSWORD_KEY = "rememberedPassword"
REMEMBER_FLAG_KEY = "shouldRemember"

# Everything scoped to a single OTP wizard; wiped when a flow finishes
FLOW_KEYS = (PENDING_EMAIL_KEY, DEV_CODE_KEY)

# Server-side OTP record types
OTP_TYPE_VERIFICATION = "verification"
OTP_TYPE_RESET_PASSWORD = "reset_password"

REPORTER_ROLES = ("reporter", "admin")

# Landing destinations after authentication
LANDING_REPORTER = "reporter/dashboard"
LANDING_READER = "tabs"
LANDING_LOGIN = "auth/login"
