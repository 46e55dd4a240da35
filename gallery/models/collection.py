"""
Collection model: a named, typed container of ordered content placements.
"""

from django.core.exceptions import ValidationError
from django.core.validators import (
    MaxLengthValidator,
    MaxValueValidator,
    MinLengthValidator,
    MinValueValidator,
)
from django.db import models

from .base import TimeStampedModel


class CollectionQuerySet(models.QuerySet):
    """Custom queryset with collection filters."""

    def by_type(self, collection_type):
        """Filter by collection type."""
        return self.filter(collection_type=collection_type)

    def visible(self):
        """Get only publicly listed collections."""
        return self.filter(visible=True)

    def client_galleries(self):
        return self.filter(collection_type=Collection.CollectionType.CLIENT_GALLERY)

    def listing_order(self):
        """Highest priority first (1 is highest), newest first within a priority."""
        return self.order_by(models.F("priority").asc(nulls_last=True), "-created_at", "-id")


class Collection(TimeStampedModel):
    """
    A typed container (blog, portfolio, gallery) owning an ordered sequence of content.

    Order lives on CollectionContent rows, never on the collection itself.
    """

    class CollectionType(models.TextChoices):
        BLOG = "blog", "Blog"
        PORTFOLIO = "portfolio", "Portfolio"
        ART_GALLERY = "art_gallery", "Art Gallery"
        CLIENT_GALLERY = "client_gallery", "Client Gallery"

    class DisplayMode(models.TextChoices):
        CHRONOLOGICAL = "chronological", "Chronological"
        ORDERED = "ordered", "Ordered"

    collection_type = models.CharField(
        max_length=20,
        choices=CollectionType.choices,
        db_index=True,
        help_text="Type of collection; drives page size and visibility defaults",
    )

    title = models.CharField(
        max_length=100,
        validators=[MinLengthValidator(3)],
        help_text="Display title (3-100 characters)",
    )

    slug = models.SlugField(
        max_length=150,
        unique=True,
        validators=[MinLengthValidator(3)],
        help_text="Globally unique URL identifier, derived from the title when blank",
    )

    description = models.TextField(
        blank=True, default="", validators=[MaxLengthValidator(500)]
    )

    location = models.CharField(max_length=255, blank=True, default="")

    collection_date = models.DateField(null=True, blank=True)

    visible = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the collection is publicly listed",
    )

    priority = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)],
        help_text="Listing priority, 1 (highest) to 4 (lowest)",
    )

    content_per_page = models.PositiveIntegerField(
        default=30,
        validators=[MinValueValidator(1)],
        help_text="Default page size for paginated reads",
    )

    display_mode = models.CharField(
        max_length=20,
        choices=DisplayMode.choices,
        default=DisplayMode.ORDERED,
    )

    # Password gate
    is_password_protected = models.BooleanField(default=False)
    password_hash = models.CharField(max_length=128, blank=True, default="")
    password_salt = models.CharField(max_length=64, blank=True, default="")

    # Cached count of placements; rebuilt by the recount task
    total_content = models.PositiveIntegerField(default=0)

    cover_image = models.ForeignKey(
        "Content",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="cover_of",
        limit_choices_to={"kind": "image"},
    )

    objects = CollectionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["collection_type", "visible"]),
            models.Index(fields=["priority", "-created_at"]),
        ]

    def __str__(self):
        return f"{self.title} ({self.slug})"

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def clean(self):
        super().clean()

        if self.is_password_protected and not self.password_hash:
            raise ValidationError(
                {"password_hash": "Password protected collections need a password"}
            )

        if self.cover_image_id and self.cover_image.kind != "image":
            raise ValidationError({"cover_image": "Cover must be an image"})
