"""Pure filtering and sorting shared by every post listing page."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Iterable, Sequence

from .filter_state import FilterState, SortKey
from .post import Post


@dataclass(frozen=True)
class DerivedView:
    posts: tuple[Post, ...]
    total_count: int
    active_filter_count: int

    @property
    def filtered_count(self) -> int:
        return len(self.posts)

    @property
    def urls(self) -> tuple[str, ...]:
        return tuple(p.url for p in self.posts)

    @property
    def is_empty(self) -> bool:
        return not self.posts

    def counter_text(self) -> str:
        if self.filtered_count < self.total_count:
            return f"{self.filtered_count}/{self.total_count}"
        return str(self.filtered_count)


def collation_key(text: str) -> str:
    """
    Primary collation strength: accents and case are ignored.

    "Éclair" and "eclair" compare equal and fall back to store order.
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold()


def matches(post: Post, state: FilterState) -> bool:
    if not state.all_categories and state.selected_categories.isdisjoint(post.categories):
        return False

    if state.selected_tags and state.selected_tags.isdisjoint(post.tags):
        return False

    query = state.normalized_query
    if query and query not in post.search_text:
        return False

    return True


def partition(posts: Iterable[Post], state: FilterState) -> tuple[list[Post], list[Post]]:
    included: list[Post] = []
    excluded: list[Post] = []
    for post in posts:
        (included if matches(post, state) else excluded).append(post)
    return included, excluded


def sort_posts(posts: Sequence[Post], key: SortKey) -> list[Post]:
    """
    Stable sort; posts with equal keys keep their incoming order.

    `reverse=True` in `sorted` preserves the order of equal elements, so
    descending keys stay stable too.
    """
    if key is SortKey.NEWEST:
        return sorted(posts, key=lambda p: p.date, reverse=True)
    if key is SortKey.OLDEST:
        return sorted(posts, key=lambda p: p.date)
    if key is SortKey.TITLE_ASC:
        return sorted(posts, key=lambda p: collation_key(p.title))
    if key is SortKey.TITLE_DESC:
        return sorted(posts, key=lambda p: collation_key(p.title), reverse=True)
    if key is SortKey.CATEGORY:
        return sorted(
            posts,
            key=lambda p: (collation_key(p.primary_category), collation_key(p.title)),
        )
    raise ValueError(f"Unsupported sort key: {key!r}")


def run_query(posts: Sequence[Post], state: FilterState) -> DerivedView:
    included, _ = partition(posts, state)
    return DerivedView(
        posts=tuple(sort_posts(included, state.sort_key)),
        total_count=len(posts),
        active_filter_count=state.active_filter_count,
    )
