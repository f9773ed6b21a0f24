from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from bs4 import BeautifulSoup, NavigableString, Tag

from .config_schema import ViewConfig
from .errors import ViewError
from .filter_state import ALL_CATEGORIES, FilterState
from .markup import render_post_card
from .query import DerivedView


@dataclass
class PageElements:
    """The parts of the page the reconciler writes to and the controls read from."""

    container: Tag
    counter: Tag | None = None
    no_results: Tag | None = None
    badge: Tag | None = None
    category_buttons: list[Tag] = field(default_factory=list)
    tag_buttons: list[Tag] = field(default_factory=list)
    search_input: Tag | None = None
    sort_select: Tag | None = None
    clear_button: Tag | None = None


def find_page_elements(document: BeautifulSoup, view: ViewConfig) -> PageElements:
    container = document.select_one(view.container_selector)
    if container is None:
        raise ViewError(f"Post list container not found: {view.container_selector}")

    return PageElements(
        container=container,
        counter=document.select_one(view.counter_selector),
        no_results=document.select_one(view.no_results_selector),
        badge=document.select_one(view.badge_selector),
        category_buttons=list(document.select(view.category_button_selector)),
        tag_buttons=list(document.select(view.tag_button_selector)),
        search_input=document.select_one(view.search_input_selector),
        sort_select=document.select_one(view.sort_select_selector),
        clear_button=document.select_one(view.clear_button_selector),
    )


def _classes(el: Tag) -> list[str]:
    value = el.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def set_class(el: Tag, name: str, enabled: bool) -> None:
    classes = [c for c in _classes(el) if c != name]
    if enabled:
        classes.append(name)
    if classes:
        el["class"] = classes
    else:
        el.attrs.pop("class", None)


def set_hidden(el: Tag, hidden: bool) -> None:
    if hidden:
        el["hidden"] = ""
    else:
        el.attrs.pop("hidden", None)


def _set_text(el: Tag, text: str) -> None:
    el.clear()
    el.string = text


class ViewReconciler:
    """
    Makes the page match a DerivedView.

    Subclasses decide how the post list itself is rebuilt; the counter,
    empty-state panel, active-filter badge and control states are updated
    the same way for both.
    """

    def __init__(
        self,
        document: BeautifulSoup,
        elements: PageElements,
        view_config: ViewConfig,
    ) -> None:
        self.document = document
        self.elements = elements
        self.view_config = view_config

    def render(self, view: DerivedView, state: FilterState) -> None:
        self._render_list(view)
        self._update_counter(view)
        self._update_no_results(view)
        self._update_badge(view)
        self._sync_toggles(state)
        self._sync_inputs(state)

    def _render_list(self, view: DerivedView) -> None:
        raise NotImplementedError

    def _update_counter(self, view: DerivedView) -> None:
        if self.elements.counter is not None:
            _set_text(self.elements.counter, view.counter_text())

    def _update_no_results(self, view: DerivedView) -> None:
        if self.elements.no_results is not None:
            set_hidden(self.elements.no_results, not view.is_empty)

    def _update_badge(self, view: DerivedView) -> None:
        badge = self.elements.badge
        if badge is None:
            return
        _set_text(badge, str(view.active_filter_count))
        set_hidden(badge, view.active_filter_count == 0)

    def _sync_toggles(self, state: FilterState) -> None:
        active = self.view_config.active_class

        for button in self.elements.category_buttons:
            name = button.get(self.view_config.category_attribute, "")
            if name == ALL_CATEGORIES:
                on = state.all_categories
            else:
                on = name in state.selected_categories
            set_class(button, active, on)
            button["aria-pressed"] = "true" if on else "false"

        for button in self.elements.tag_buttons:
            on = button.get(self.view_config.tag_attribute, "") in state.selected_tags
            set_class(button, active, on)
            button["aria-pressed"] = "true" if on else "false"

    def _sync_inputs(self, state: FilterState) -> None:
        search = self.elements.search_input
        if search is not None:
            search["value"] = state.search_query

        select = self.elements.sort_select
        if select is not None:
            for option in select.find_all("option"):
                value = option.get("value", option.get_text(strip=True))
                if value == state.sort_key.value:
                    option["selected"] = ""
                else:
                    option.attrs.pop("selected", None)


class RegenerateReconciler(ViewReconciler):
    """Discards the list's children and rebuilds one card per visible post."""

    def __init__(
        self,
        document: BeautifulSoup,
        elements: PageElements,
        view_config: ViewConfig,
        *,
        delimiter: str = "|",
    ) -> None:
        super().__init__(document, elements, view_config)
        self._delimiter = delimiter

    def _render_list(self, view: DerivedView) -> None:
        container = self.elements.container
        container.clear()
        for post in view.posts:
            container.append(render_post_card(self.document, post, delimiter=self._delimiter))


class ReorderReconciler(ViewReconciler):
    """
    Keeps the server-rendered item nodes and re-appends the visible ones in
    view order. Non-matching nodes stay detached until a later render needs
    them, so node identity survives every filter change.
    """

    def __init__(
        self,
        document: BeautifulSoup,
        elements: PageElements,
        view_config: ViewConfig,
        *,
        nodes: Mapping[str, Tag],
    ) -> None:
        super().__init__(document, elements, view_config)
        self._nodes = dict(nodes)

    def node_for(self, url: str) -> Tag | None:
        return self._nodes.get(url)

    def _render_list(self, view: DerivedView) -> None:
        container = self.elements.container

        for node in self._nodes.values():
            node.extract()

        # Leftover indentation would keep an "empty" list from being empty.
        for child in list(container.contents):
            if isinstance(child, NavigableString) and not child.strip():
                child.extract()

        for url in view.urls:
            node = self._nodes.get(url)
            if node is None:
                raise ViewError(f"No rendered node for post: {url}")
            container.append(node)


def build_reconciler(
    document: BeautifulSoup,
    elements: PageElements,
    view_config: ViewConfig,
    *,
    nodes: Mapping[str, Tag] | None = None,
    delimiter: str = "|",
) -> ViewReconciler:
    if view_config.strategy == "reorder":
        if nodes is None:
            raise ViewError("The reorder strategy needs the rendered post nodes")
        return ReorderReconciler(document, elements, view_config, nodes=nodes)
    return RegenerateReconciler(document, elements, view_config, delimiter=delimiter)
