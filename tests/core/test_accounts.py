"""Tests for registration, login and account counters."""
from __future__ import annotations

import pytest

from bookshelf.auth import verify_password
from bookshelf.core import accounts, library
from bookshelf.core.errors import AuthError, ConflictError, ValidationError


def test_register_normalizes_email_and_hashes_password(db):
    user = accounts.register_user(db, "  Reader@Example.COM ", "secret123")

    assert user.id is not None
    assert user.email == "reader@example.com"
    assert user.password_hash != "secret123"
    assert verify_password("secret123", user.password_hash)
    assert user.storage_used == 0


def test_register_rejects_existing_email_case_insensitively(db, user):
    with pytest.raises(ConflictError):
        accounts.register_user(db, "READER@example.com ", "another-pass")


def test_register_rejects_short_password(db):
    with pytest.raises(ValidationError):
        accounts.register_user(db, "short@example.com", "12345")


def test_login_returns_user_and_token(db, user):
    logged_in, session_token = accounts.login(db, "Reader@example.com", "secret123")

    assert logged_in.id == user.id
    assert session_token.token
    assert session_token.expiration_ms > 0


def test_login_failures_are_indistinguishable(db, user):
    with pytest.raises(AuthError) as unknown:
        accounts.login(db, "nobody@example.com", "secret123")
    with pytest.raises(AuthError) as wrong:
        accounts.login(db, "reader@example.com", "wrong-password")

    assert unknown.value.message == wrong.value.message == accounts.INVALID_CREDENTIALS
    assert unknown.value.status_code == wrong.value.status_code == 401


def test_change_password_requires_current_password(db, user):
    with pytest.raises(AuthError):
        accounts.change_password(db, user, "not-it", "brand-new-pass")

    accounts.change_password(db, user, "secret123", "brand-new-pass")

    accounts.login(db, "reader@example.com", "brand-new-pass")
    with pytest.raises(AuthError):
        accounts.login(db, "reader@example.com", "secret123")


def test_storage_used_follows_book_sizes(db, user):
    library.ingest_books(db, user.id, [
        {"title": "Dune", "author": "Frank Herbert", "fileSize": 1024},
        {"title": "Emma", "author": "Jane Austen", "fileSize": 512},
        {"title": "Ulysses", "author": "James Joyce"},
    ])
    db.refresh(user)
    assert user.storage_used == 1536

    dune = next(b for b in library.list_books(db, user.id)[0] if b.title == "Dune")
    library.delete_book(db, user.id, dune.id)
    db.refresh(user)
    assert user.storage_used == 512


def test_user_stats_counts_books_and_reads(db, user):
    result = library.ingest_books(db, user.id, [
        {"title": "Dune", "author": "Frank Herbert", "fileSize": 2048},
        {"title": "Emma", "author": "Jane Austen"},
    ])
    library.set_read(db, user.id, result.added[0].id, True)
    db.refresh(user)

    stats = accounts.user_stats(db, user)

    assert stats == {
        "total_books": 2,
        "total_books_read": 1,
        "storage_used": 2048,
        "storage_used_formatted": "2 KB",
    }


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 Bytes"), (500, "500 Bytes"), (1024, "1 KB"), (1536, "1.5 KB"), (1048576, "1 MB")],
)
def test_format_bytes(size, expected):
    assert accounts.format_bytes(size) == expected
