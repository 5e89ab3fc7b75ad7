"""
In-memory users and one-time codes for the dev backend.

One active code per (email, type); issuing a new one replaces the old.
Lost on restart, which is fine for local development and tests.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DevUser:
    email: str
    name: str
    hashed_password: str = ""
    phone: str = ""
    role: str = "visitor"
    is_verified: bool = False
    profile_image: str | None = None
    location: str | None = None
    bio: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "profileImage": self.profile_image,
            "phone": self.phone,
            "location": self.location,
            "bio": self.bio,
            "isVerified": self.is_verified,
        }

    def set_password(self, password: str) -> None:
        secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        self.hashed_password = bcrypt.hashpw(secret, bcrypt.gensalt()).decode("utf-8")

    def check_password(self, password: str) -> bool:
        if not self.hashed_password:
            return False
        secret = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(secret, self.hashed_password.encode("utf-8"))
        except ValueError:
            return False


@dataclass
class OtpRecord:
    email: str
    code: str
    type: str
    expires_at: datetime
    verified: bool = False

    @property
    def expired(self) -> bool:
        return self.expires_at <= _now()


class DevStore:
    def __init__(self, otp_ttl_seconds: int = 600):
        self.otp_ttl_seconds = otp_ttl_seconds
        self.users: dict[str, DevUser] = {}
        self.otps: dict[tuple[str, str], OtpRecord] = {}

    def get_user(self, email: str) -> DevUser | None:
        return self.users.get(email.lower())

    def get_user_by_id(self, user_id: str) -> DevUser | None:
        return next((u for u in self.users.values() if u.id == user_id), None)

    def add_user(self, user: DevUser) -> DevUser:
        user.email = user.email.lower()
        self.users[user.email] = user
        logger.info("Dev user created: %s (role=%s)", user.email, user.role)
        return user

    def create_user(self, email: str, name: str, password: str, **fields) -> DevUser:
        user = DevUser(email=email, name=name, **fields)
        user.set_password(password)
        return self.add_user(user)

    def issue_otp(self, email: str, otp_type: str) -> OtpRecord:
        code = str(secrets.randbelow(1_000_000)).zfill(6)
        record = OtpRecord(
            email=email.lower(),
            code=code,
            type=otp_type,
            expires_at=_now() + timedelta(seconds=self.otp_ttl_seconds),
        )
        self.otps[(record.email, otp_type)] = record
        logger.info("Dev %s code issued for %s", otp_type, record.email)
        return record

    def find_otp(self, email: str, code: str, otp_type: str | None = None) -> OtpRecord | None:
        email = email.lower()
        for (rec_email, rec_type), record in self.otps.items():
            if rec_email != email or record.code != code:
                continue
            if otp_type is None or rec_type == otp_type:
                return record
        return None

    def discard_otp(self, record: OtpRecord) -> None:
        self.otps.pop((record.email, record.type), None)
