from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from request_hub.core.config import settings


def create_access_token(
    subject: str,
    role: str,
    department: str,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Mint a token carrying the current-user descriptor.

    Identity is resolved by the surrounding application; this helper exists for
    local tooling and tests that need a token the API will accept.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=2))
    to_encode: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "department": department,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt, expire


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
