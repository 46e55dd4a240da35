"""
Composition link between a Collection and a Content item.
"""

from django.db import models

from .base import TimeStampedModel


class CollectionContentQuerySet(models.QuerySet):
    def for_collection(self, collection_id):
        return self.filter(collection_id=collection_id)

    def visible(self):
        return self.filter(visible=True)

    def ordered(self):
        """Ascending order_index, ties broken by link id."""
        return self.order_by("order_index", "id")

    def with_content(self):
        return self.select_related(
            "content",
            "content__image",
            "content__text",
            "content__code",
            "content__gif",
        )


class CollectionContent(TimeStampedModel):
    """
    Placement of a content item inside a collection.

    Holds the order position, a per-placement visibility flag and an optional
    caption override. Content rows are never touched when a placement is removed.
    """

    collection = models.ForeignKey(
        "Collection", on_delete=models.CASCADE, related_name="placements"
    )
    content = models.ForeignKey(
        "Content", on_delete=models.CASCADE, related_name="placements"
    )

    order_index = models.PositiveIntegerField(
        help_text="Relative position within the collection; gaps are allowed"
    )
    visible = models.BooleanField(default=True)
    caption = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Override the content's caption for this placement",
    )

    objects = CollectionContentQuerySet.as_manager()

    class Meta:
        ordering = ["order_index", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["collection", "content"], name="unique_collection_content"
            ),
        ]
        indexes = [models.Index(fields=["collection", "order_index"])]

    def __str__(self):
        return f"{self.collection_id}:{self.content_id} @ {self.order_index}"

    def get_caption(self):
        """Return the placement caption, or fall back to the content's own."""
        return self.caption or self.content.caption
