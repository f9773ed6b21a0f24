from __future__ import annotations

from .config import config_sha256, load_config
from .config_schema import AppConfig
from .controls import DiscoveryController, UIEvent, enhance
from .errors import ConfigError, PostStoreError, ViewError
from .filter_state import ALL_CATEGORIES, FilterState, SortKey
from .post import Post
from .query import DerivedView, run_query
from .store import PostStore

__all__ = [
    "ALL_CATEGORIES",
    "AppConfig",
    "ConfigError",
    "DerivedView",
    "DiscoveryController",
    "FilterState",
    "Post",
    "PostStore",
    "PostStoreError",
    "SortKey",
    "UIEvent",
    "ViewError",
    "config_sha256",
    "enhance",
    "load_config",
    "run_query",
]
