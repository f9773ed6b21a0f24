from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

ALL_CATEGORIES = "all"


class SortKey(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"
    CATEGORY = "category"


_ALL_ONLY = frozenset({ALL_CATEGORIES})


@dataclass(frozen=True)
class FilterState:
    """
    The reader's current category/tag/search/sort selection.

    `selected_categories` is either exactly {"all"} (no category restriction)
    or a set of concrete category names; the two are never mixed. Tags carry
    no sentinel: an empty tag set means no tag restriction.
    """

    selected_categories: frozenset[str] = field(default=_ALL_ONLY)
    selected_tags: frozenset[str] = field(default_factory=frozenset)
    search_query: str = ""
    sort_key: SortKey = SortKey.NEWEST

    def __post_init__(self) -> None:
        if ALL_CATEGORIES in self.selected_categories and len(self.selected_categories) > 1:
            raise ValueError('"all" cannot be combined with concrete categories')
        if not isinstance(self.sort_key, SortKey):
            raise ValueError(f"sort_key must be a SortKey, got {self.sort_key!r}")

    @property
    def all_categories(self) -> bool:
        return self.selected_categories == _ALL_ONLY

    @property
    def normalized_query(self) -> str:
        return self.search_query.lower()

    @property
    def active_filter_count(self) -> int:
        categories = 0 if self.all_categories else len(self.selected_categories)
        query = 1 if self.normalized_query else 0
        return categories + len(self.selected_tags) + query


def default_state(sort_key: SortKey = SortKey.NEWEST) -> FilterState:
    return FilterState(sort_key=sort_key)


def parse_sort_key(value: str | SortKey) -> SortKey:
    """Raise ValueError for anything outside the five sort keys."""
    if isinstance(value, SortKey):
        return value
    return SortKey((value or "").strip())


def toggle_category(state: FilterState, name: str) -> FilterState:
    if name == ALL_CATEGORIES:
        return replace(state, selected_categories=_ALL_ONLY)

    selected = set(state.selected_categories)
    selected.discard(ALL_CATEGORIES)
    if name in selected:
        selected.remove(name)
    else:
        selected.add(name)

    # Deselecting the last category falls back to "everything".
    if not selected:
        return replace(state, selected_categories=_ALL_ONLY)
    return replace(state, selected_categories=frozenset(selected))


def toggle_tag(state: FilterState, name: str) -> FilterState:
    return replace(state, selected_tags=state.selected_tags ^ {name})


def set_search_query(state: FilterState, text: str) -> FilterState:
    return replace(state, search_query=text or "")


def set_sort_key(state: FilterState, key: str | SortKey) -> FilterState:
    return replace(state, sort_key=parse_sort_key(key))


def clear_all(state: FilterState, *, sort_key: SortKey = SortKey.NEWEST) -> FilterState:
    return default_state(sort_key)
