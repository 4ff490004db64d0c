from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from buddy_schedule.config import settings
import bcrypt
import jwt
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password for storage"""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode()


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check a password against a stored hash"""
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), password_hash.encode())
    except ValueError:
        logger.error("Stored password hash is malformed")
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed bearer token carrying data as claims"""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a bearer token; None if the signature or expiry is invalid"""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None
