"""Session tokens issued by the dev backend."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from newswatch.core import get_settings


def create_access_token(subject: str, role: str, email: str) -> str:
    s = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=s.jwt_expire_minutes)
    claims = {"sub": subject, "role": role, "email": email, "exp": expire}
    return jwt.encode(claims, s.jwt_secret, algorithm=s.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the claims of a valid token, or None."""
    s = get_settings()
    try:
        claims = jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])
    except JWTError:
        return None
    if claims.get("sub") is None:
        return None
    return claims
