"""Coarse duplicate key for books: normalized title and author.

Editions and ISBNs are ignored; two records with the same
fingerprint for one user are the same work.
"""
import re
from typing import Optional

_NOT_ALNUM = re.compile(r"[^a-z0-9]")


def normalize(text: Optional[str]) -> str:
    """Lowercase and drop everything outside ``[a-z0-9]``."""
    if not text:
        return ""
    return _NOT_ALNUM.sub("", text.lower())


def make_fingerprint(title: Optional[str], author: Optional[str]) -> str:
    return f"{normalize(title)}-{normalize(author)}"
