from datetime import datetime, timedelta
from typing import NamedTuple, Optional
from uuid import UUID

from jose import JWTError, jwt

from agencyflow.core.config import get_settings

settings = get_settings()

TOKEN_TYPES = ("user", "contact")


class TokenSubject(NamedTuple):
    """Decoded bearer token: who, and from which identity space."""
    subject_id: UUID
    token_type: str  # user, contact


def create_access_token(
    subject_id: UUID,
    token_type: str = "user",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT for an agency user or a client-portal contact."""
    if token_type not in TOKEN_TYPES:
        raise ValueError(f"Unknown token type: {token_type}")
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": str(subject_id),
        "exp": expire,
        "typ": token_type,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> Optional[TokenSubject]:
    """Decode and validate a JWT. Returns None if invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    subject = payload.get("sub")
    token_type = payload.get("typ", "user")
    if subject is None or token_type not in TOKEN_TYPES:
        return None
    try:
        return TokenSubject(UUID(subject), token_type)
    except ValueError:
        return None
