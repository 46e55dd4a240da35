"""
Content models.

Content is a tagged union: one Content row carries the common fields and the
`kind` tag, and exactly one variant row (ImageContent, TextContent,
CodeContent or GifContent) holds the kind-specific payload.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinValueValidator
from django.db import models

from .base import TimeStampedModel


class ContentQuerySet(models.QuerySet):
    """Custom queryset with variant helpers."""

    def by_kind(self, kind):
        return self.filter(kind=kind)

    def with_variants(self):
        """Join every variant table to avoid N+1 queries when resolving items."""
        return self.select_related("image", "text", "code", "gif")

    def unreferenced(self):
        """Content not placed in any collection."""
        return self.filter(placements__isnull=True)


class Content(TimeStampedModel):
    """Common fields for every content item, independent of any collection."""

    class Kind(models.TextChoices):
        IMAGE = "image", "Image"
        TEXT = "text", "Text"
        CODE = "code", "Code"
        GIF = "gif", "Gif"

    kind = models.CharField(max_length=10, choices=Kind.choices, db_index=True)

    caption = models.CharField(max_length=500, blank=True, default="")

    description = models.TextField(
        blank=True,
        default="",
        validators=[MaxLengthValidator(500)],
        help_text="Descriptive text (max 500)",
    )

    objects = ContentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["kind", "-created_at"])]

    def __str__(self):
        return f"{self.get_kind_display()} #{self.pk}"

    @property
    def variant(self):
        """Return the variant row named by the kind tag."""
        return getattr(self, self.kind)


class ImageContent(models.Model):
    """Image payload: URLs, dimensions and camera metadata."""

    content = models.OneToOneField(
        Content, on_delete=models.CASCADE, primary_key=True, related_name="image"
    )

    title = models.CharField(max_length=255, blank=True, default="")
    image_url_web = models.URLField(max_length=1024)
    image_url_original = models.URLField(max_length=1024, blank=True, default="")
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)

    # Camera metadata (auto-populated from EXIF when available)
    camera_make = models.CharField(max_length=100, blank=True, default="")
    camera_model = models.CharField(max_length=100, blank=True, default="")
    lens = models.CharField(max_length=255, blank=True, default="")
    f_stop = models.CharField(max_length=20, blank=True, default="")
    shutter_speed = models.CharField(max_length=20, blank=True, default="")
    iso = models.PositiveIntegerField(null=True, blank=True)
    focal_length = models.CharField(max_length=20, blank=True, default="")
    captured_at = models.DateTimeField(null=True, blank=True)

    location = models.CharField(max_length=255, blank=True, default="")
    author = models.CharField(max_length=255, blank=True, default="")
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    black_and_white = models.BooleanField(default=False)
    is_film = models.BooleanField(default=False)

    file_identifier = models.CharField(
        max_length=300,
        blank=True,
        default="",
        db_index=True,
        help_text="Upload date and original filename (YYYY-MM-DD/filename) for duplicate detection",
    )

    def __str__(self):
        return self.title or self.file_identifier or self.image_url_web


class TextContent(models.Model):
    """Free text block."""

    class Format(models.TextChoices):
        MARKDOWN = "markdown", "Markdown"
        HTML = "html", "HTML"
        PLAIN = "plain", "Plain text"
        JS = "js", "JavaScript"
        PY = "py", "Python"
        SQL = "sql", "SQL"
        JAVA = "java", "Java"
        TS = "ts", "TypeScript"
        TF = "tf", "Terraform"
        YML = "yml", "YAML"

    content = models.OneToOneField(
        Content, on_delete=models.CASCADE, primary_key=True, related_name="text"
    )

    body = models.TextField(validators=[MaxLengthValidator(10000)])
    format = models.CharField(max_length=20, choices=Format.choices, default=Format.PLAIN)

    def clean(self):
        super().clean()
        if not self.body or not self.body.strip():
            raise ValidationError({"body": "Text content cannot be empty"})


class CodeContent(models.Model):
    """Source code snippet."""

    content = models.OneToOneField(
        Content, on_delete=models.CASCADE, primary_key=True, related_name="code"
    )

    title = models.CharField(max_length=255, blank=True, default="")
    body = models.TextField(validators=[MaxLengthValidator(50000)])
    language = models.CharField(max_length=50)
    filename = models.CharField(max_length=255, blank=True, default="")

    def clean(self):
        super().clean()
        if not self.body or not self.body.strip():
            raise ValidationError({"body": "Code content cannot be empty"})
        if not self.language or not self.language.strip():
            raise ValidationError({"language": "Language is required"})


class GifContent(models.Model):
    """Animated image with a still thumbnail."""

    content = models.OneToOneField(
        Content, on_delete=models.CASCADE, primary_key=True, related_name="gif"
    )

    title = models.CharField(max_length=255, blank=True, default="")
    gif_url = models.URLField(max_length=1024)
    thumbnail_url = models.URLField(max_length=1024, blank=True, default="")
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    author = models.CharField(max_length=255, blank=True, default="")
    file_identifier = models.CharField(max_length=300, blank=True, default="", db_index=True)

    def __str__(self):
        return self.title or self.gif_url
