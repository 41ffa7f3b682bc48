"""
Credential hashing and bearer tokens
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import settings
from ..domain.models import SessionContext, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=settings.PASSWORD_HASH_SCHEMES, deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password with the configured one-way scheme"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash"""
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        # unknown or malformed hash
        return False


def create_access_token(session: SessionContext,
                        expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a session

    Args:
        session: Session context with the resolved role
        expires_delta: Custom lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": session.user_id,
        "email": session.email,
        "name": session.display_name,
        "role": session.role.value,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a token, None if the signature or expiry is invalid"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None


def session_from_payload(payload: Dict[str, Any]) -> Optional[SessionContext]:
    """Rebuild a session context from a decoded access token"""
    if payload.get("type") != "access" or not payload.get("sub"):
        return None
    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
    except ValueError:
        return None
    return SessionContext(
        user_id=payload["sub"],
        email=payload.get("email", ""),
        display_name=payload.get("name", ""),
        role=role,
    )
