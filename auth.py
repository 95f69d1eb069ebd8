import base64
import hashlib
import hmac
import secrets
from typing import Optional, Tuple

from fastapi import Request

SALT_BYTES = 16
COOKIE_PREFIX = "auth_"
COOKIE_MAX_AGE = 24 * 3600


def hash_password(password: str) -> Tuple[bytes, bytes]:
    """Return ``(salt, sha256(salt || password))`` with a random salt."""
    salt = secrets.token_bytes(SALT_BYTES)
    return salt, _digest(salt, password)


def check_password(password: str, salt: bytes, expected: bytes) -> bool:
    return hmac.compare_digest(_digest(salt, password), expected)


def _digest(salt: bytes, password: str) -> bytes:
    return hashlib.sha256(salt + password.encode()).digest()


def sign_token(secret: str, paste_id: str) -> str:
    """HMAC-SHA256 of the paste id, base64url encoded without padding."""
    mac = hmac.new(secret.encode(), paste_id.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(mac).rstrip(b"=").decode()


def verify_token(secret: str, paste_id: str, token: Optional[str]) -> bool:
    if not token:
        return False
    try:
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
    except (ValueError, TypeError):
        return False
    expected = hmac.new(secret.encode(), paste_id.encode(), hashlib.sha256).digest()
    return hmac.compare_digest(raw, expected)


def cookie_name(paste_id: str) -> str:
    return COOKIE_PREFIX + paste_id


async def paste_token(paste_id: str, request: Request) -> Optional[str]:
    """Auth cookie presented for the paste in the path, if any."""
    return request.cookies.get(cookie_name(paste_id))
