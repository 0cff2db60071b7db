from typing import Any, List
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from .. import models, schemas
from ..auth import get_current_user
from ..core import categories, library
from ..database import get_db

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("/")
def list_books(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The caller's books, newest first."""
    books, count = library.list_books(db, current_user.id)
    return schemas.envelope(
        f"Found {count} books",
        books=schemas.dump_all(schemas.BookOut, books),
        count=count,
    )

@router.post("/")
def add_books(
    candidates: List[Any] = Body(...),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Add a batch of books. Items are validated one by one so a malformed
    entry shows up in ``failed`` instead of rejecting the whole request.
    """
    result = library.ingest_books(db, current_user.id, candidates)
    return schemas.envelope(
        f"Added {len(result.added)} books. {len(result.duplicates)} duplicates found.",
        added=schemas.dump_all(schemas.BookOut, result.added),
        duplicates=result.duplicates,
        failed=result.failed,
    )

@router.get("/stats")
def library_stats(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    stats = library.library_stats(db, current_user.id)
    stats["per_category_breakdown"] = [schemas.camel_keys(group) for group in stats["per_category_breakdown"]]
    return schemas.envelope("Library stats fetched", stats=schemas.camel_keys(stats))

@router.get("/{book_id}")
def get_book(book_id: int, current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    book = library.get_book(db, current_user.id, book_id)
    return schemas.envelope("Book fetched", book=schemas.dump(schemas.BookOut, book))

@router.put("/{book_id}/progress")
def update_progress(
    book_id: int,
    update: schemas.ProgressUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = library.update_progress(db, current_user.id, book_id, update.progress)
    return schemas.envelope("Progress updated successfully", book=schemas.dump(schemas.BookOut, book))

@router.put("/{book_id}/read")
def update_read(
    book_id: int,
    update: schemas.ReadUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = library.set_read(db, current_user.id, book_id, update.read)
    return schemas.envelope("Read status updated successfully", book=schemas.dump(schemas.BookOut, book))

@router.put("/{book_id}/category")
def update_book_category(
    book_id: int,
    assign: schemas.CategoryAssign,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Move the book to one category, or to the default bucket when categoryId is null."""
    book = categories.reassign_book(db, current_user.id, book_id, assign.category_id)
    return schemas.envelope("Book category updated successfully", book=schemas.dump(schemas.BookOut, book))

@router.delete("/{book_id}")
def delete_book(book_id: int, current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    book = library.delete_book(db, current_user.id, book_id)
    return schemas.envelope("Book deleted successfully", book=schemas.dump(schemas.BookOut, book))
