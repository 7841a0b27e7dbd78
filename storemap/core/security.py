from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import base64
import binascii
import uuid

import jwt as pyjwt
from jwt.exceptions import PyJWTError as JWTError

from ..config import settings


def create_access_token(user_id: uuid.UUID, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token (used by scripts and tests; production tokens come from the identity provider)"""
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(hours=settings.access_token_expire_hours)

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
        "iat": now,
    }

    encoded_jwt = pyjwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT token"""
    try:
        payload = pyjwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


def decode_data_url(data: str) -> bytes:
    """
    Decode a base64 image payload, with or without a data URL prefix.

    Raises:
        ValueError: If the payload is not valid base64
    """
    encoded = data.split(",", 1)[1] if data.startswith("data:") else data
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


def encode_data_url(blob: bytes, mime_type: str = "image/png") -> str:
    """Render binary image data as a data URL for the browser"""
    return f"data:{mime_type};base64,{base64.b64encode(blob).decode()}"
