from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt
from sqlalchemy.orm import Session
from . import models
from .database import get_db
from .config import settings
from .core.errors import AuthError
from .logging_setup import get_logger

# Password hashing uses bcrypt directly; it only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72

logger = get_logger("auth")


@dataclass
class SessionToken:
    token: str
    expires_at: datetime

    @property
    def expiration_ms(self) -> int:
        return int(self.expires_at.timestamp() * 1000)


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed digest in storage
        logger.warning("Stored password digest could not be parsed")
        return False


_dummy_hash: Optional[str] = None

def dummy_password_hash() -> str:
    """Digest checked for unknown emails so login costs the same either way."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = get_password_hash("not-a-real-password")
    return _dummy_hash


def create_access_token(user_id, expires_delta: Optional[timedelta] = None) -> SessionToken:
    if not settings.SECRET_KEY:
        raise RuntimeError("SECRET_KEY is not set")
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(user_id), "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return SessionToken(token=encoded_jwt, expires_at=expire)

def decode_access_token(token: str) -> dict:
    """Verify ``token`` against the current key, then any previous keys."""
    keys = [settings.SECRET_KEY] + list(settings.PREVIOUS_SECRET_KEYS)
    for key in keys:
        if not key:
            continue
        try:
            return jwt.decode(token, key, algorithms=[settings.ALGORITHM])
        except ExpiredSignatureError:
            raise AuthError("Token has expired")
        except JWTError:
            continue
    raise AuthError("Token is not valid")

def authenticate(db: Session, token: Optional[str], claimed_user_id: Optional[str]) -> models.User:
    """
    Resolve the user behind ``token``.

    The token's subject must equal the separately supplied user id, so a
    token lifted from one account cannot be replayed against another.
    """
    if not token:
        raise AuthError("No token found, authorization denied")

    payload = decode_access_token(token)
    subject = payload.get("sub")
    if subject is None:
        raise AuthError("Token is not valid")

    if claimed_user_id is None or str(subject) != str(claimed_user_id).strip():
        logger.warning("Token subject does not match the claimed user id")
        raise AuthError("User ID mismatch")

    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthError("Token is not valid")

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        raise AuthError("User not found")
    return user

def get_current_user(request: Request, db: Session = Depends(get_db)) -> models.User:
    """
    Dependency reading ``Authorization: Bearer <token>`` and ``User-Id``.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthError("No authorization header, access denied")

    token = None
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()

    return authenticate(db, token, request.headers.get("User-Id"))
