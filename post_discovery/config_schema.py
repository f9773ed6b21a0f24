from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .filter_state import SortKey


def _validate_selector(value: str) -> str:
    selector = (value or "").strip()
    if not selector:
        raise ValueError("must be a non-empty CSS selector")
    return selector


class SourceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["json", "dom"] = "json"
    data_selector: str = "script#posts-data"
    item_selector: str = ".post-item"
    list_delimiter: str = Field("|", min_length=1)

    @field_validator("data_selector", "item_selector")
    @classmethod
    def _selectors_must_be_set(cls, v: str) -> str:
        return _validate_selector(v)


class ViewConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    strategy: Literal["regenerate", "reorder"] = "regenerate"
    container_selector: str = "#post-list"
    counter_selector: str = "#result-count"
    no_results_selector: str = "#no-results"
    badge_selector: str = "#active-filter-count"
    category_button_selector: str = "[data-category]"
    category_attribute: str = "data-category"
    tag_button_selector: str = "[data-tag]"
    tag_attribute: str = "data-tag"
    search_input_selector: str = "#post-search"
    sort_select_selector: str = "#post-sort"
    clear_button_selector: str = "#clear-filters"
    active_class: str = "active"

    @field_validator(
        "container_selector",
        "counter_selector",
        "no_results_selector",
        "badge_selector",
        "category_button_selector",
        "tag_button_selector",
        "search_input_selector",
        "sort_select_selector",
        "clear_button_selector",
    )
    @classmethod
    def _selectors_must_be_set(cls, v: str) -> str:
        return _validate_selector(v)

    @field_validator("category_attribute", "tag_attribute")
    @classmethod
    def _attribute_names_must_be_set(cls, v: str) -> str:
        name = (v or "").strip()
        if not name or any(ch.isspace() for ch in name):
            raise ValueError("must be a single attribute name")
        return name

    @field_validator("active_class")
    @classmethod
    def _active_class_is_single_token(cls, v: str) -> str:
        name = (v or "").strip()
        if not name or any(ch.isspace() for ch in name):
            raise ValueError("must be a single CSS class name")
        return name


class DefaultsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    sort_key: SortKey = SortKey.NEWEST


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    source: SourceConfig = Field(default_factory=SourceConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    @model_validator(mode="after")
    def _reorder_needs_rendered_nodes(self) -> "AppConfig":
        if self.view.strategy == "reorder" and self.source.kind != "dom":
            raise ValueError("view.strategy 'reorder' requires source.kind 'dom'")
        return self
