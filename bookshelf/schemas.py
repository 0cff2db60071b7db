from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; both accepted on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def dump(schema, obj) -> dict:
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


def dump_all(schema, objs) -> list:
    return [dump(schema, obj) for obj in objs]


# --- Users ---
class UserCreate(CamelModel):
    email: EmailStr
    password: str

class UserLogin(CamelModel):
    email: EmailStr
    password: str

class PasswordChange(CamelModel):
    current_password: str
    new_password: str

class UserOut(CamelModel):
    id: int
    email: EmailStr
    storage_used: int = 0
    created_at: Optional[datetime] = None


# --- Categories ---
class CategoryCreate(CamelModel):
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None

class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    # Only moves the category when present in the request; null means top level
    parent_id: Optional[int] = None

class CategoryAssign(CamelModel):
    category_id: Optional[int] = None

class CategoryBrief(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    path: List[int] = []
    level: int = 0
    is_default: bool = False
    created_at: Optional[datetime] = None


# --- Books ---
class BookSummary(CamelModel):
    id: int
    title: str
    author: str
    cover_path: Optional[str] = None
    read: bool = False
    progress: int = 0

class CategoryOut(CategoryBrief):
    books: List[BookSummary] = []

# Limits follow the column sizes in models.Book
MAX_FILE_SIZE = 2**63 - 1

class BookCandidate(CamelModel):
    title: str = Field(max_length=255)
    author: str = Field(max_length=255)
    cover_path: Optional[str] = Field(default=None, max_length=1024)
    isbn: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None
    file_uri: Optional[str] = Field(default=None, max_length=1024)
    file_type: str = Field(default="pdf", max_length=32)
    file_size: Optional[int] = Field(default=None, ge=0, le=MAX_FILE_SIZE)
    progress: int = Field(default=0, ge=0, le=100)
    read: bool = False
    category_id: Optional[int] = None

    @field_validator("title", "author")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class BookOut(CamelModel):
    id: int
    title: str
    author: str
    cover_path: Optional[str] = None
    isbn: Optional[str] = None
    description: Optional[str] = None
    file_uri: Optional[str] = None
    file_type: str = "pdf"
    file_size: Optional[int] = None
    progress: int = 0
    read: bool = False
    categories: List[CategoryBrief] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProgressUpdate(CamelModel):
    progress: int

class ReadUpdate(CamelModel):
    read: bool


# --- Envelope ---
def envelope(message: str, **payload) -> dict:
    """``{"success": true, "message": ..., **payload}``; payload keys are already camelCase."""
    return {"success": True, "message": message, **payload}

def camel_keys(data: dict) -> dict:
    return {to_camel(key): value for key, value in data.items()}
