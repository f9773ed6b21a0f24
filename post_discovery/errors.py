from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class PostStoreError(RuntimeError):
    """Raised when the page's post data is absent or malformed."""


class ViewError(RuntimeError):
    """Raised when the page lacks an element the view reconciler needs."""
