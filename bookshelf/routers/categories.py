from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from .. import models, schemas
from ..auth import get_current_user
from ..core import categories
from ..database import get_db

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("/")
def list_categories(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All of the caller's categories with their member books."""
    items = categories.list_categories(db, current_user.id)
    return schemas.envelope(
        f"Found {len(items)} categories",
        categories=schemas.dump_all(schemas.CategoryOut, items),
    )

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: schemas.CategoryCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = categories.create_category(
        db, current_user.id, payload.name, payload.description, payload.parent_id
    )
    return schemas.envelope("Category created successfully", category=schemas.dump(schemas.CategoryBrief, category))

@router.put("/{category_id}")
def update_category(
    category_id: int,
    payload: schemas.CategoryUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = categories.update_category(
        db,
        current_user.id,
        category_id,
        name=payload.name,
        description=payload.description if "description" in payload.model_fields_set else categories.UNSET,
        parent_id=payload.parent_id,
        move="parent_id" in payload.model_fields_set,
    )
    return schemas.envelope("Category updated successfully", category=schemas.dump(schemas.CategoryBrief, category))

@router.get("/{category_id}/children")
def category_children(category_id: int, current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    items = categories.get_children(db, current_user.id, category_id)
    return schemas.envelope(
        f"Found {len(items)} child categories",
        categories=schemas.dump_all(schemas.CategoryBrief, items),
    )

@router.get("/{category_id}/subtree")
def category_subtree(category_id: int, current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    items = categories.get_subtree(db, current_user.id, category_id)
    return schemas.envelope(
        f"Found {len(items)} descendant categories",
        categories=schemas.dump_all(schemas.CategoryBrief, items),
    )

@router.delete("/{category_id}/books/{book_id}")
def remove_book_from_category(
    category_id: int,
    book_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = categories.remove_book_from_category(db, current_user.id, category_id, book_id)
    return schemas.envelope("Book removed from category successfully", book=schemas.dump(schemas.BookOut, book))

@router.delete("/{category_id}")
def delete_category(category_id: int, current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Books in the category (or below it) are kept and lose their category."""
    category = categories.delete_category(db, current_user.id, category_id)
    return schemas.envelope("Category deleted successfully", category=schemas.dump(schemas.CategoryBrief, category))
