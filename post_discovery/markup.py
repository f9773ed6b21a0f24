from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from .post import Post


def _format_date(post_date) -> str:
    return post_date.strftime("%b %d, %Y")


def _term_list(document: BeautifulSoup, values: tuple[str, ...], *, kind: str, plural: str) -> Tag:
    ul = document.new_tag("ul", attrs={"class": f"post-{plural}"})
    for value in values:
        li = document.new_tag("li", attrs={"class": f"post-{kind}"})
        li.string = value
        ul.append(li)
    return ul


def render_post_card(document: BeautifulSoup, post: Post, *, delimiter: str = "|") -> Tag:
    """
    Build one list item for a post.

    The card carries the same data attributes the build pipeline renders, so
    a regenerated list can be read back by the node loader.
    """
    card = document.new_tag(
        "article",
        attrs={
            "class": "post-item",
            "data-url": post.url,
            "data-title": post.title.lower(),
            "data-excerpt": post.excerpt.lower(),
            "data-categories": delimiter.join(post.categories).lower(),
            "data-tags": delimiter.join(post.tags).lower(),
            "data-date": str(int(post.date.timestamp())),
        },
    )
    if post.image:
        card["data-image"] = post.image
    if post.last_modified_at is not None:
        card["data-lastmod"] = str(int(post.last_modified_at.timestamp()))

    link = document.new_tag("a", attrs={"class": "post-link", "href": post.url})
    if post.image:
        link.append(
            document.new_tag(
                "img",
                attrs={"class": "post-image", "src": post.image, "alt": post.title, "loading": "lazy"},
            )
        )
    title = document.new_tag("h3", attrs={"class": "post-title"})
    title.string = post.title
    link.append(title)
    card.append(link)

    time_el = document.new_tag("time", attrs={"class": "post-date", "datetime": post.date.isoformat()})
    time_el.string = _format_date(post.date)
    card.append(time_el)

    if post.last_modified_at is not None and post.last_modified_at.date() != post.date.date():
        updated = document.new_tag(
            "time",
            attrs={"class": "post-updated", "datetime": post.last_modified_at.isoformat()},
        )
        updated.string = f"Updated {_format_date(post.last_modified_at)}"
        card.append(updated)

    if post.excerpt:
        excerpt = document.new_tag("p", attrs={"class": "post-excerpt"})
        excerpt.string = post.excerpt
        card.append(excerpt)

    if post.categories:
        card.append(_term_list(document, post.categories, kind="category", plural="categories"))
    if post.tags:
        card.append(_term_list(document, post.tags, kind="tag", plural="tags"))

    return card
