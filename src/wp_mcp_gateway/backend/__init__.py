"""Backend collaborators (the wrapped WordPress site)."""

from .wordpress import WordPressBackend, WordPressClient

__all__ = [
    "WordPressBackend",
    "WordPressClient",
]
