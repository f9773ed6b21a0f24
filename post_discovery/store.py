from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, Sequence

from bs4 import BeautifulSoup, Tag

from .config_schema import SourceConfig
from .errors import PostStoreError
from .normalize import post_from_node, post_from_record
from .post import Post


def parse_document(html: str | BeautifulSoup) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html, "html.parser")


class PostStore(Sequence[Post]):
    """
    Immutable, ordered collection of the page's posts.

    Order is the order the build pipeline rendered them in, and is the
    tie-breaker for every sort. Identity is the post url.
    """

    def __init__(self, posts: Iterable[Post]) -> None:
        items = tuple(posts)
        by_url: dict[str, Post] = {}
        for post in items:
            if post.url in by_url:
                raise PostStoreError(f"Duplicate post url: {post.url}")
            by_url[post.url] = post
        self._posts = items
        self._by_url = by_url

    def __len__(self) -> int:
        return len(self._posts)

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __getitem__(self, index: Any) -> Any:
        return self._posts[index]

    def __repr__(self) -> str:
        return f"PostStore({len(self._posts)} posts)"

    def get(self, url: str) -> Post | None:
        return self._by_url.get(url)

    def categories(self) -> list[str]:
        return _distinct(c for p in self._posts for c in p.categories)

    def tags(self) -> list[str]:
        return _distinct(t for p in self._posts for t in p.tags)


def _distinct(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def load_from_json_block(document: BeautifulSoup, selector: str) -> PostStore:
    """
    Read the serialized post list embedded in the page.

    The block holds either a JSON array of post records or an object with a
    `posts` array.
    """
    block = document.select_one(selector)
    if block is None:
        raise PostStoreError(f"Post data block not found: {selector}")

    raw = block.string if block.string is not None else block.get_text()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PostStoreError(f"Post data block {selector} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("posts")
    if not isinstance(data, list):
        raise PostStoreError(f"Post data block {selector} must hold a list of posts")

    posts: list[Post] = []
    for index, item in enumerate(data):
        post = post_from_record(item) if isinstance(item, dict) else None
        if post is None:
            raise PostStoreError(
                f"Post record #{index} in {selector} is missing a title, url or valid date"
            )
        posts.append(post)

    return PostStore(posts)


def load_from_nodes(
    document: BeautifulSoup, selector: str, *, delimiter: str = "|"
) -> tuple[PostStore, dict[str, Tag]]:
    """
    Read posts from already-rendered list items.

    Returns the store and the url -> node mapping the in-place reconciler
    reorders. A page with no rendered items is an empty store.
    """
    nodes = document.select(selector)

    posts: list[Post] = []
    by_url: dict[str, Tag] = {}
    for index, node in enumerate(nodes):
        post = post_from_node(node, delimiter=delimiter)
        if post is None:
            raise PostStoreError(
                f"Rendered post #{index} ({selector}) is missing a title, url or valid date"
            )
        posts.append(post)
        by_url[post.url] = node

    return PostStore(posts), by_url


def load(
    document: BeautifulSoup, source: SourceConfig
) -> tuple[PostStore, dict[str, Tag]]:
    """
    Materialize the page's posts once, from whichever source is configured.

    The node mapping is empty for the JSON source. Raises PostStoreError when
    the source is absent or malformed.
    """
    if source.kind == "dom":
        return load_from_nodes(document, source.item_selector, delimiter=source.list_delimiter)
    return load_from_json_block(document, source.data_selector), {}
