from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from bs4 import BeautifulSoup, Tag

from . import filter_state as fs
from .config_schema import AppConfig
from .errors import PostStoreError, ViewError
from .event_log import EventLog
from .filter_state import FilterState, SortKey
from .query import DerivedView, run_query
from .reconcile import PageElements, ViewReconciler, build_reconciler, find_page_elements
from .store import PostStore, load, parse_document

EventKind = Literal["click", "input", "change"]


@dataclass(frozen=True)
class UIEvent:
    """A user interaction on one of the page's controls."""

    kind: EventKind
    target: Tag
    value: str | None = None


def _closest(target: Tag, candidates: list[Tag]) -> Tag | None:
    node: Tag | None = target
    while node is not None:
        for candidate in candidates:
            if candidate is node:
                return candidate
        node = node.parent
    return None


class DiscoveryController:
    """
    Owns the page's single FilterState.

    Every state-changing transition recomputes the DerivedView once and
    renders it once before returning, so state and view never diverge.
    """

    def __init__(
        self,
        store: PostStore,
        reconciler: ViewReconciler,
        *,
        default_sort: SortKey = SortKey.NEWEST,
        log: EventLog | None = None,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._default_sort = default_sort
        self._log = log
        self._state = fs.default_state(default_sort)
        self._view: DerivedView | None = None
        self.render_count = 0

    @property
    def store(self) -> PostStore:
        return self._store

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def view(self) -> DerivedView:
        if self._view is None:
            self._view = run_query(self._store, self._state)
        return self._view

    @property
    def elements(self) -> PageElements:
        return self._reconciler.elements

    @property
    def reconciler(self) -> ViewReconciler:
        return self._reconciler

    @property
    def document(self) -> BeautifulSoup:
        return self._reconciler.document

    def refresh(self) -> DerivedView:
        return self._commit(self._state, transition="refresh")

    def toggle_category(self, name: str) -> DerivedView:
        return self._commit(fs.toggle_category(self._state, name), transition="toggle_category", name=name)

    def toggle_tag(self, name: str) -> DerivedView:
        return self._commit(fs.toggle_tag(self._state, name), transition="toggle_tag", name=name)

    def set_search_query(self, text: str) -> DerivedView:
        return self._commit(fs.set_search_query(self._state, text), transition="set_search_query")

    def set_sort_key(self, key: str | SortKey) -> DerivedView | None:
        """
        Apply a sort key; an unknown key leaves state and view untouched and
        returns None.
        """
        try:
            new_state = fs.set_sort_key(self._state, key)
        except ValueError:
            if self._log is not None:
                self._log.warning("sort_key_rejected", sort_key=str(key))
            return None
        return self._commit(new_state, transition="set_sort_key")

    def clear_all(self) -> DerivedView:
        return self._commit(
            fs.clear_all(self._state, sort_key=self._default_sort), transition="clear_all"
        )

    def handle_event(self, event: UIEvent) -> bool:
        """
        Route a UI event to its transition. Returns False when the event does
        not belong to any known control or carries an invalid value.
        """
        handler = self._resolve(event)
        if handler is None:
            if self._log is not None:
                self._log.info("ui_event_ignored", kind=event.kind, target=event.target.name)
            return False
        return handler() is not None

    def _resolve(self, event: UIEvent) -> Callable[[], DerivedView | None] | None:
        elements = self.elements
        config = self._reconciler.view_config

        if event.kind == "click":
            button = _closest(event.target, elements.category_buttons)
            if button is not None:
                category = button.get(config.category_attribute, "")
                return lambda: self.toggle_category(category)

            button = _closest(event.target, elements.tag_buttons)
            if button is not None:
                tag = button.get(config.tag_attribute, "")
                return lambda: self.toggle_tag(tag)

            if elements.clear_button is not None:
                if _closest(event.target, [elements.clear_button]) is not None:
                    return self.clear_all

        elif event.kind == "input":
            if elements.search_input is not None and event.target is elements.search_input:
                text = event.value if event.value is not None else event.target.get("value", "")
                return lambda: self.set_search_query(text)

        elif event.kind == "change":
            if elements.sort_select is not None and event.target is elements.sort_select:
                return lambda: self.set_sort_key(event.value or "")

        return None

    def _commit(self, new_state: FilterState, *, transition: str, **details: object) -> DerivedView:
        self._state = new_state
        view = run_query(self._store, new_state)
        self._reconciler.render(view, new_state)
        self._view = view
        self.render_count += 1

        if self._log is not None:
            self._log.info(
                "filter_state_changed",
                transition=transition,
                categories=sorted(new_state.selected_categories),
                tags=sorted(new_state.selected_tags),
                search_query=new_state.search_query,
                sort_key=new_state.sort_key.value,
                filtered=view.filtered_count,
                total=view.total_count,
                **details,
            )
        return view


def enhance(
    html: str | BeautifulSoup,
    config: AppConfig | None = None,
    *,
    log: EventLog | None = None,
    strict: bool = False,
) -> DiscoveryController | None:
    """
    Attach post discovery to a parsed page and render the initial view.

    When the post data or the list container is missing the page is left
    exactly as rendered and None is returned; with `strict` the error is
    re-raised after it is logged.
    """
    cfg = config or AppConfig()
    document = parse_document(html)

    try:
        store, nodes = load(document, cfg.source)
        elements = find_page_elements(document, cfg.view)
        reconciler = build_reconciler(
            document,
            elements,
            cfg.view,
            nodes=nodes if cfg.source.kind == "dom" else None,
            delimiter=cfg.source.list_delimiter,
        )
    except (PostStoreError, ViewError) as e:
        if log is not None:
            log.warning("post_store_load_failed", error_type=type(e).__name__, message=str(e))
        if strict:
            raise
        return None

    if log is not None:
        log.info(
            "post_store_loaded",
            source=cfg.source.kind,
            strategy=cfg.view.strategy,
            posts=len(store),
        )

    controller = DiscoveryController(
        store, reconciler, default_sort=cfg.defaults.sort_key, log=log
    )
    controller.refresh()
    return controller
