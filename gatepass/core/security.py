"""Security and authentication utilities.

Staff devices authenticate with a JWT signed by ``SECRET_KEY``. The token's
``sub`` claim identifies the staff actor recorded on check-in/check-out and
``role`` is either ``staff`` or ``admin``. Issuing tokens (login) belongs to
the account service; this module only creates them for operators and tests
and verifies them on each request.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from gatepass.core import config
from gatepass.core.constants import ROLE_ADMIN, ROLE_STAFF

STAFF_COOKIE_NAME = "staff_token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.settings.SECRET_KEY, algorithm=config.settings.ALGORITHM)


def _extract_token(request: Request) -> Optional[str]:
    """Bearer header wins over the cookie (scanner apps send headers, the web UI sends cookies)."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(STAFF_COOKIE_NAME)


def _decode(request: Request) -> dict:
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = jwt.decode(token, config.settings.SECRET_KEY, algorithms=[config.settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload


def verify_staff_token(request: Request) -> dict:
    """Verify a staff or admin JWT and return its payload."""
    payload = _decode(request)
    if payload.get("role") not in (ROLE_STAFF, ROLE_ADMIN):
        raise HTTPException(status_code=403, detail="Not authorized")
    return payload


def verify_admin_token(request: Request) -> dict:
    """Verify an admin JWT and return its payload."""
    payload = _decode(request)
    if payload.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Not authorized")
    return payload
