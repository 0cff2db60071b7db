from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    storage_used = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        # parent_key is 0 for roots; NULL parents would never collide in a unique index
        UniqueConstraint("user_id", "parent_key", "name", "is_default", name="uq_categories_sibling_name"),
        Index(
            "uq_categories_user_default",
            "user_id",
            unique=True,
            sqlite_where=text("is_default = 1"),
            postgresql_where=text("is_default"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), index=True, nullable=True)
    parent_key = Column(Integer, nullable=False, default=0)
    # Materialized ancestry, e.g. "/3/8/" for a category whose parent is 8 under root 3
    lineage = Column(String(1024), nullable=False, default="/", index=True)
    level = Column(Integer, nullable=False, default=0)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent", cascade="all")
    books = relationship("Book", back_populates="category", passive_deletes=True, order_by="Book.id.desc()")

    @property
    def path(self):
        """Ancestor ids from the root down to the parent."""
        return [int(part) for part in (self.lineage or "/").strip("/").split("/") if part]

    @property
    def subtree_marker(self):
        return f"/{self.id}/"

    def place_under(self, parent):
        if parent is None:
            self.parent_id = None
            self.parent_key = 0
            self.lineage = "/"
            self.level = 0
        else:
            self.parent_id = parent.id
            self.parent_key = parent.id
            self.lineage = f"{parent.lineage}{parent.id}/"
            self.level = parent.level + 1


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        UniqueConstraint("user_id", "fingerprint", name="uq_books_user_fingerprint"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_books_progress_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    cover_path = Column(String(1024), nullable=True)
    isbn = Column(String(32), nullable=True)
    description = Column(Text, nullable=True)
    file_uri = Column(String(1024), nullable=True)
    file_type = Column(String(32), nullable=False, default="pdf")
    file_size = Column(BigInteger, nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    read = Column(Boolean, nullable=False, default=False)
    fingerprint = Column(String(512), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), index=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="books")

    @property
    def categories(self):
        return [self.category] if self.category is not None else []
