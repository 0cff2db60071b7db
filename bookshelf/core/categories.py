"""Per-user category tree and the book -> category association.

A book points at no more than one category through ``Book.category_id``. A
category's member list is always read back with a query, so there is no
second copy to keep in sync. Tree position is materialized in
``Category.lineage`` ("/root/.../parent/") and ``Category.level``.
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from .. import models
from ..config import settings
from ..logging_setup import get_logger
from .errors import ConflictError, NotFoundOrForbidden, ValidationError

logger = get_logger("categories")

# Marks an update field the caller did not send
UNSET = object()


def get_owned_category(db: Session, user_id: int, category_id: int) -> models.Category:
    category = (
        db.query(models.Category)
        .filter(models.Category.id == category_id, models.Category.user_id == user_id)
        .first()
    )
    if category is None:
        raise NotFoundOrForbidden("Category not found or unauthorized")
    return category


def get_owned_book(db: Session, user_id: int, book_id: int) -> models.Book:
    book = (
        db.query(models.Book)
        .options(joinedload(models.Book.category))
        .filter(models.Book.id == book_id, models.Book.user_id == user_id)
        .first()
    )
    if book is None:
        raise NotFoundOrForbidden("Book not found or unauthorized")
    return book


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    return name


def _sibling_exists(db: Session, user_id: int, name: str, parent_id: Optional[int], exclude_id: Optional[int] = None) -> bool:
    query = db.query(models.Category.id).filter(
        models.Category.user_id == user_id,
        models.Category.name == name,
        models.Category.parent_key == (parent_id or 0),
        models.Category.is_default.is_(False),
    )
    if exclude_id is not None:
        query = query.filter(models.Category.id != exclude_id)
    return query.first() is not None


def find_default_category(db: Session, user_id: int) -> Optional[models.Category]:
    return (
        db.query(models.Category)
        .filter(models.Category.user_id == user_id, models.Category.is_default.is_(True))
        .first()
    )


def ensure_default_category(db: Session, user_id: int) -> models.Category:
    """
    Return the user's default bucket, creating it on first use.

    The bucket is only flushed here; it is committed together with whatever
    the caller attaches to it. It is identified by ``is_default`` so renaming
    it does not lose it.
    """
    category = find_default_category(db, user_id)
    if category is not None:
        return category

    category = models.Category(
        user_id=user_id,
        name=settings.DEFAULT_CATEGORY_NAME,
        description=None,
        is_default=True,
    )
    category.place_under(None)
    db.add(category)
    try:
        db.flush()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        category = find_default_category(db, user_id)
        if category is None:
            raise
        return category
    logger.info("Created default category id=%s for user id=%s", category.id, user_id)
    return category


def create_category(
    db: Session,
    user_id: int,
    name: str,
    description: Optional[str] = None,
    parent_id: Optional[int] = None,
) -> models.Category:
    name = _clean_name(name)
    parent = get_owned_category(db, user_id, parent_id) if parent_id is not None else None

    if _sibling_exists(db, user_id, name, parent.id if parent else None):
        raise ConflictError("A category with this name already exists here")

    category = models.Category(user_id=user_id, name=name, description=description, is_default=False)
    category.place_under(parent)
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A category with this name already exists here")
    db.refresh(category)
    logger.info("Created category id=%s level=%s for user id=%s", category.id, category.level, user_id)
    return category


def list_categories(db: Session, user_id: int) -> List[models.Category]:
    return (
        db.query(models.Category)
        .options(selectinload(models.Category.books))
        .filter(models.Category.user_id == user_id)
        .order_by(models.Category.level, models.Category.name, models.Category.id)
        .all()
    )


def get_children(db: Session, user_id: int, category_id: int) -> List[models.Category]:
    parent = get_owned_category(db, user_id, category_id)
    return (
        db.query(models.Category)
        .filter(models.Category.user_id == user_id, models.Category.parent_id == parent.id)
        .order_by(models.Category.name, models.Category.id)
        .all()
    )


def _descendants(db: Session, category: models.Category) -> List[models.Category]:
    return (
        db.query(models.Category)
        .filter(
            models.Category.user_id == category.user_id,
            models.Category.lineage.contains(category.subtree_marker),
        )
        .order_by(models.Category.level, models.Category.name, models.Category.id)
        .all()
    )


def get_subtree(db: Session, user_id: int, category_id: int) -> List[models.Category]:
    """Every category below ``category_id``, nearest levels first."""
    return _descendants(db, get_owned_category(db, user_id, category_id))


def update_category(
    db: Session,
    user_id: int,
    category_id: int,
    *,
    name: Optional[str] = None,
    description=UNSET,
    parent_id: Optional[int] = None,
    move: bool = False,
) -> models.Category:
    """
    Rename and/or move a category. ``move`` makes ``parent_id`` apply
    (None = root). ``description`` is left alone unless given; None clears it.
    """
    category = get_owned_category(db, user_id, category_id)

    new_name = _clean_name(name) if name is not None else category.name
    new_parent = None
    new_parent_id = category.parent_id
    if move:
        if parent_id is not None:
            new_parent = get_owned_category(db, user_id, parent_id)
            if new_parent.id == category.id or category.subtree_marker in new_parent.lineage:
                raise ValidationError("A category cannot be moved under itself or its descendants")
            if category.is_default:
                raise ValidationError("The default category must stay at the top level")
        new_parent_id = new_parent.id if new_parent is not None else None

    if not category.is_default and _sibling_exists(db, user_id, new_name, new_parent_id, exclude_id=category.id):
        raise ConflictError("A category with this name already exists here")

    category.name = new_name
    if description is not UNSET:
        category.description = description

    if move and new_parent_id != category.parent_id:
        old_prefix = f"{category.lineage}{category.id}/"
        descendants = _descendants(db, category)
        category.place_under(new_parent)
        new_prefix = f"{category.lineage}{category.id}/"
        for child in descendants:
            child.lineage = new_prefix + child.lineage[len(old_prefix):]
            child.level = len(child.path)
        logger.info(
            "Moved category id=%s under parent=%s (%d descendants re-pathed)",
            category.id, new_parent_id, len(descendants),
        )

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A category with this name already exists here")
    db.refresh(category)
    return category


def delete_category(db: Session, user_id: int, category_id: int) -> models.Category:
    """
    Delete a category and everything below it. Member books of any removed
    category lose their category reference; no book is deleted.
    """
    category = get_owned_category(db, user_id, category_id)
    removed_ids = [category.id] + [c.id for c in _descendants(db, category)]

    stripped = (
        db.query(models.Book)
        .filter(models.Book.user_id == user_id, models.Book.category_id.in_(removed_ids))
        .update({models.Book.category_id: None}, synchronize_session="fetch")
    )
    db.delete(category)
    db.commit()
    logger.info(
        "Deleted category id=%s (%d categories, %d books detached) for user id=%s",
        category_id, len(removed_ids), stripped, user_id,
    )
    return category


def reassign_book(db: Session, user_id: int, book_id: int, category_id: Optional[int] = None) -> models.Book:
    """Put a book into exactly one category, or the default bucket when ``category_id`` is None."""
    book = get_owned_book(db, user_id, book_id)
    if category_id is not None:
        target = get_owned_category(db, user_id, category_id)
    else:
        target = ensure_default_category(db, user_id)

    book.category = target
    db.commit()
    db.refresh(book)
    logger.info("Book id=%s moved to category id=%s", book.id, target.id)
    return book


def remove_book_from_category(db: Session, user_id: int, category_id: int, book_id: int) -> models.Book:
    get_owned_category(db, user_id, category_id)
    book = get_owned_book(db, user_id, book_id)
    if book.category_id == category_id:
        book.category = None
        db.commit()
        db.refresh(book)
    return book
