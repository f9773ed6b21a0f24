from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import cached_property


@dataclass(frozen=True)
class Post:
    """A pre-rendered blog post record, fixed for the lifetime of the page."""

    title: str
    url: str
    date: datetime
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    excerpt: str = ""
    image: str | None = None
    last_modified_at: datetime | None = None

    @cached_property
    def search_text(self) -> str:
        # Plain concatenation: a query may run across two adjacent fields.
        parts = [self.title, self.excerpt, *self.categories, *self.tags]
        return "".join(parts).lower()

    @property
    def primary_category(self) -> str:
        return self.categories[0] if self.categories else ""
