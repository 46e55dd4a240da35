"""
Models for the gallery app.

- base: TimeStampedModel
- collection: Collection (with queryset)
- content: Content and its variant rows (ImageContent, TextContent, CodeContent, GifContent)
- placement: CollectionContent, the ordered link between the two
"""

from .base import TimeStampedModel

from .collection import Collection, CollectionQuerySet

from .content import (
    CodeContent,
    Content,
    ContentQuerySet,
    GifContent,
    ImageContent,
    TextContent,
)

from .placement import CollectionContent, CollectionContentQuerySet

__all__ = [
    # Base
    "TimeStampedModel",
    # Collection
    "Collection",
    "CollectionQuerySet",
    # Content
    "Content",
    "ContentQuerySet",
    "ImageContent",
    "TextContent",
    "CodeContent",
    "GifContent",
    # Placement
    "CollectionContent",
    "CollectionContentQuerySet",
]
