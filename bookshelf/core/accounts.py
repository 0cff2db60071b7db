from typing import Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..auth import SessionToken, create_access_token, dummy_password_hash, get_password_hash, verify_password
from ..config import settings
from ..logging_setup import get_logger
from .errors import AuthError, ConflictError, ValidationError

logger = get_logger("accounts")

INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_password_strength(password: str) -> None:
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
        )


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


def register_user(db: Session, email: str, password: str) -> models.User:
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")
    _check_password_strength(password)

    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = models.User(email=email, password_hash=get_password_hash(password), storage_used=0)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user


def login(db: Session, email: str, password: str) -> Tuple[models.User, SessionToken]:
    """Check credentials; unknown email and wrong password fail identically."""
    user = get_user_by_email(db, email)
    if user is None:
        verify_password(password or "", dummy_password_hash())
        raise AuthError(INVALID_CREDENTIALS)
    if not verify_password(password or "", user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)
    return user, create_access_token(user.id)


def change_password(db: Session, user: models.User, current_password: str, new_password: str) -> models.User:
    if not verify_password(current_password or "", user.password_hash):
        raise AuthError("Current password is incorrect")
    _check_password_strength(new_password)
    user.password_hash = get_password_hash(new_password)
    db.commit()
    db.refresh(user)
    logger.info("Password changed for user id=%s", user.id)
    return user


def recompute_storage_used(db: Session, user_id: int) -> int:
    """Best-effort: books without a known size count as zero."""
    total = (
        db.query(func.coalesce(func.sum(models.Book.file_size), 0))
        .filter(models.Book.user_id == user_id)
        .scalar()
    )
    db.query(models.User).filter(models.User.id == user_id).update(
        {models.User.storage_used: int(total or 0)}, synchronize_session="fetch"
    )
    db.commit()
    return int(total or 0)


def format_bytes(size: int, decimals: int = 2) -> str:
    if not size:
        return "0 Bytes"
    k = 1024
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    i = 0
    while i < len(units) - 1 and size >= k ** (i + 1):
        i += 1
    value = round(size / (k ** i), max(decimals, 0))
    # Drop trailing zeros: 1.50 -> 1.5, 2.00 -> 2
    return f"{value:g} {units[i]}"


def user_stats(db: Session, user: models.User) -> dict:
    total = db.query(func.count(models.Book.id)).filter(models.Book.user_id == user.id).scalar() or 0
    read = (
        db.query(func.count(models.Book.id))
        .filter(models.Book.user_id == user.id, models.Book.read.is_(True))
        .scalar()
        or 0
    )
    storage = user.storage_used or 0
    return {
        "total_books": total,
        "total_books_read": read,
        "storage_used": storage,
        "storage_used_formatted": format_bytes(storage),
    }
