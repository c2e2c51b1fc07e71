"""Session caches."""

from scrobblestats.application.cache.image_cache import (
    CachedImage,
    ImageCache,
    ImageSource,
)

__all__ = ["CachedImage", "ImageCache", "ImageSource"]
