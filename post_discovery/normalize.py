from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from bs4 import Tag

from .post import Post

# Numeric stamps above this are taken as epoch milliseconds (year ~5138 in seconds).
_MILLIS_THRESHOLD = 1e11

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_str_list(value: Any, *, delimiter: str | None = None) -> list[str] | None:
    if value is None:
        return None

    if isinstance(value, str):
        pieces = value.split(delimiter) if delimiter else [value]
        return [p.strip() for p in pieces if p.strip()]

    if isinstance(value, (list, tuple)):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    return None


def _dedupe_terms(values: list[str]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for term in values:
        if term in seen:
            continue
        seen.add(term)
        out.append(term)
    return tuple(out)


def _from_epoch(number: float) -> datetime:
    if abs(number) > _MILLIS_THRESHOLD:
        number = number / 1000.0
    return datetime.fromtimestamp(number, tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a post date from a datetime, an epoch number, or a date string.

    Naive values are taken as UTC; the result is always timezone-aware UTC.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            return _from_epoch(float(value))
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        except (OverflowError, OSError):
            return None
        dt = _parse_date_string(text)
        if dt is None:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_date_string(text: str) -> datetime | None:
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def post_from_record(item: Mapping[str, Any]) -> Post | None:
    """
    Build a Post from one serialized record of the page's JSON data block.

    Tolerates the field aliases Jekyll templates commonly emit. Returns None
    when the record lacks a title, a url or a parseable date.
    """
    url = (
        _coerce_str(item.get("url"))
        or _coerce_str(item.get("link"))
        or _coerce_str(item.get("permalink"))
    )
    title = _coerce_str(item.get("title"))
    date = parse_timestamp(item.get("date"))
    if not url or not title or date is None:
        return None

    categories = _coerce_str_list(item.get("categories"))
    if categories is None:
        categories = _coerce_str_list(item.get("category"))

    tags = _coerce_str_list(item.get("tags"))

    excerpt = (
        _coerce_str(item.get("excerpt"))
        or _coerce_str(item.get("summary"))
        or _coerce_str(item.get("description"))
        or ""
    )

    last_modified_at = parse_timestamp(item.get("last_modified_at"))
    if last_modified_at is None:
        last_modified_at = parse_timestamp(item.get("lastmod"))

    return Post(
        title=title,
        url=url,
        date=date,
        categories=_dedupe_terms(categories or []),
        tags=_dedupe_terms(tags or []),
        excerpt=excerpt,
        image=_coerce_str(item.get("image")),
        last_modified_at=last_modified_at,
    )


def _child_texts(node: Tag, selector: str) -> list[str]:
    out: list[str] = []
    for el in node.select(selector):
        text = el.get_text(" ", strip=True)
        if text:
            out.append(text)
    return out


def post_from_node(node: Tag, *, delimiter: str = "|") -> Post | None:
    """
    Build a Post from a rendered list item carrying its metadata as attributes.

    The lowercased `data-*` attributes are a fallback: display values are read
    from the `.post-title`, `.post-excerpt`, `.post-category` and `.post-tag`
    elements when the item renders them.
    """
    url = _coerce_str(node.get("data-url"))
    if url is None:
        link = node.find("a", href=True)
        if link is not None:
            url = _coerce_str(link.get("href"))

    title_el = node.select_one(".post-title")
    title = _coerce_str(title_el.get_text(" ", strip=True)) if title_el is not None else None
    title = title or _coerce_str(node.get("data-title"))

    date = parse_timestamp(node.get("data-date"))
    if not url or not title or date is None:
        return None

    categories = _child_texts(node, ".post-category")
    if not categories:
        categories = _coerce_str_list(node.get("data-categories"), delimiter=delimiter) or []

    tags = _child_texts(node, ".post-tag")
    if not tags:
        tags = _coerce_str_list(node.get("data-tags"), delimiter=delimiter) or []

    excerpt_el = node.select_one(".post-excerpt")
    excerpt = _coerce_str(excerpt_el.get_text(" ", strip=True)) if excerpt_el is not None else None

    return Post(
        title=title,
        url=url,
        date=date,
        categories=_dedupe_terms(categories),
        tags=_dedupe_terms(tags),
        excerpt=excerpt or _coerce_str(node.get("data-excerpt")) or "",
        image=_coerce_str(node.get("data-image")),
        last_modified_at=parse_timestamp(node.get("data-lastmod")),
    )
