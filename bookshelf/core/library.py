from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

import pydantic
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..config import settings
from ..logging_setup import get_logger
from .accounts import recompute_storage_used
from .categories import ensure_default_category, get_owned_book, get_owned_category
from .errors import LibraryError, ValidationError
from .fingerprint import make_fingerprint

logger = get_logger("library")


@dataclass
class IngestResult:
    added: List[models.Book] = field(default_factory=list)
    duplicates: List[dict] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)


def find_by_fingerprint(db: Session, user_id: int, fingerprint: str) -> Optional[models.Book]:
    return (
        db.query(models.Book)
        .filter(models.Book.user_id == user_id, models.Book.fingerprint == fingerprint)
        .first()
    )


def _raw_field(raw: Any, name: str):
    if isinstance(raw, dict):
        return raw.get(name)
    return None


def _describe_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts)


def _add_one(db: Session, user_id: int, candidate: schemas.BookCandidate, result: IngestResult) -> None:
    fingerprint = make_fingerprint(candidate.title, candidate.author)
    duplicate = {"title": candidate.title, "author": candidate.author}

    # Earlier items of the same batch are already committed, so this sees them too
    if find_by_fingerprint(db, user_id, fingerprint) is not None:
        result.duplicates.append(duplicate)
        return

    if candidate.category_id is not None:
        category = get_owned_category(db, user_id, candidate.category_id)
    else:
        category = ensure_default_category(db, user_id)

    book = models.Book(
        user_id=user_id,
        title=candidate.title,
        author=candidate.author,
        cover_path=candidate.cover_path,
        isbn=candidate.isbn,
        description=candidate.description,
        file_uri=candidate.file_uri,
        file_type=candidate.file_type or "pdf",
        file_size=candidate.file_size,
        progress=candidate.progress,
        read=candidate.read,
        fingerprint=fingerprint,
        category=category,
    )
    db.add(book)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same (user, fingerprint) after our check
        db.rollback()
        result.duplicates.append(duplicate)
        return
    db.refresh(book)
    result.added.append(book)


def ingest_books(db: Session, user_id: int, candidates: Iterable[Any]) -> IngestResult:
    """
    Add ``candidates`` in order, skipping any whose fingerprint the user
    already has. Each candidate is validated and committed on its own; a bad
    one is reported in ``failed`` and the rest of the batch carries on.
    """
    result = IngestResult()
    for raw in candidates:
        try:
            candidate = schemas.BookCandidate.model_validate(raw)
        except pydantic.ValidationError as exc:
            result.failed.append({
                "title": _raw_field(raw, "title"),
                "author": _raw_field(raw, "author"),
                "error": _describe_validation_error(exc),
            })
            continue

        try:
            _add_one(db, user_id, candidate, result)
        except LibraryError as exc:
            db.rollback()
            result.failed.append({"title": candidate.title, "author": candidate.author, "error": exc.message})
        except (SQLAlchemyError, OverflowError) as exc:
            db.rollback()
            logger.exception("Could not store book %r for user id=%s", candidate.title, user_id)
            result.failed.append({
                "title": candidate.title,
                "author": candidate.author,
                "error": f"Could not store book: {exc.__class__.__name__}",
            })

    if result.added:
        recompute_storage_used(db, user_id)
    logger.info(
        "Ingest for user id=%s: %d added, %d duplicates, %d failed",
        user_id, len(result.added), len(result.duplicates), len(result.failed),
    )
    return result


def get_book(db: Session, user_id: int, book_id: int) -> models.Book:
    return get_owned_book(db, user_id, book_id)


def update_progress(db: Session, user_id: int, book_id: int, progress) -> models.Book:
    if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
        raise ValidationError("Progress must be between 0 and 100")
    book = get_owned_book(db, user_id, book_id)
    book.progress = progress
    db.commit()
    db.refresh(book)
    return book


def set_read(db: Session, user_id: int, book_id: int, read: bool) -> models.Book:
    book = get_owned_book(db, user_id, book_id)
    book.read = bool(read)
    db.commit()
    db.refresh(book)
    return book


def delete_book(db: Session, user_id: int, book_id: int) -> models.Book:
    book = get_owned_book(db, user_id, book_id)
    db.delete(book)
    db.commit()
    recompute_storage_used(db, user_id)
    logger.info("Deleted book id=%s for user id=%s", book_id, user_id)
    return book


def list_books(db: Session, user_id: int) -> Tuple[List[models.Book], int]:
    books = (
        db.query(models.Book)
        .options(joinedload(models.Book.category))
        .filter(models.Book.user_id == user_id)
        .order_by(models.Book.created_at.desc(), models.Book.id.desc())
        .all()
    )
    return books, len(books)


def library_stats(db: Session, user_id: int) -> dict:
    """
    Totals plus a per-category breakdown, aggregated in SQL on every call.
    Books without a category and books in the default bucket form a single
    "Uncategorized" group.
    """
    read_count = func.sum(case((models.Book.read.is_(True), 1), else_=0))
    rows = (
        db.query(
            models.Book.category_id,
            models.Category.name,
            models.Category.is_default,
            func.count(models.Book.id),
            read_count,
        )
        .outerjoin(models.Category, models.Book.category_id == models.Category.id)
        .filter(models.Book.user_id == user_id)
        .group_by(models.Book.category_id, models.Category.name, models.Category.is_default)
        .all()
    )

    uncategorized = None
    breakdown = []
    for category_id, name, is_default, total, read in rows:
        total = int(total or 0)
        read = int(read or 0)
        if category_id is None or is_default:
            if uncategorized is None:
                uncategorized = {
                    "category_id": None,
                    "name": settings.DEFAULT_CATEGORY_NAME,
                    "total": 0,
                    "read": 0,
                    "unread": 0,
                }
                breakdown.append(uncategorized)
            if is_default:
                uncategorized["category_id"] = category_id
                uncategorized["name"] = name
            uncategorized["total"] += total
            uncategorized["read"] += read
            uncategorized["unread"] = uncategorized["total"] - uncategorized["read"]
            continue
        breakdown.append({
            "category_id": category_id,
            "name": name,
            "total": total,
            "read": read,
            "unread": total - read,
        })

    breakdown.sort(key=lambda group: (-group["total"], group["name"] or ""))
    total_books = sum(group["total"] for group in breakdown)
    total_read = sum(group["read"] for group in breakdown)
    return {
        "total_books": total_books,
        "total_books_read": total_read,
        "total_unread": total_books - total_read,
        "per_category_breakdown": breakdown,
    }
