"""
Content variant dispatch.

Two directions, both keyed by the explicit `kind` tag:
- create_content(): build and persist a Content row plus its variant row from
  a kind-specific payload
- to_item(): turn a persisted Content (optionally with its placement) into an
  in-memory ContentItem
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from .exceptions import BlobStoreError, ConfigurationError, ValidationError
from .metadata_extractor import extract_image_metadata
from .models import CodeContent, Content, GifContent, ImageContent, TextContent
from .storage import BlobStore, get_blob_store

logger = logging.getLogger(__name__)

Kind = Content.Kind


# ============================================================================
# Creation payloads
# ============================================================================


@dataclass
class TextPayload:
    body: str
    format: str = TextContent.Format.PLAIN
    caption: str = ""
    description: str = ""


@dataclass
class CodePayload:
    body: str
    language: str
    filename: str = ""
    title: str = ""
    caption: str = ""
    description: str = ""


@dataclass
class ImagePayload:
    data: bytes
    filename: str
    title: str = ""
    caption: str = ""
    description: str = ""
    location: str = ""
    author: str = ""
    rating: Optional[int] = None
    black_and_white: bool = False
    is_film: bool = False
    # Explicit camera fields; these win over values read from EXIF
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GifPayload:
    data: bytes
    filename: str
    title: str = ""
    caption: str = ""
    description: str = ""
    author: str = ""


# ============================================================================
# Read model
# ============================================================================


@dataclass
class ImageData:
    title: str
    url: str
    original_url: str
    width: Optional[int]
    height: Optional[int]
    camera_make: str
    camera_model: str
    lens: str
    f_stop: str
    shutter_speed: str
    iso: Optional[int]
    focal_length: str
    captured_at: Optional[datetime]
    location: str
    author: str
    rating: Optional[int]
    black_and_white: bool
    is_film: bool


@dataclass
class TextData:
    body: str
    format: str


@dataclass
class CodeData:
    body: str
    language: str
    filename: str
    title: str


@dataclass
class GifData:
    title: str
    url: str
    thumbnail_url: str
    width: Optional[int]
    height: Optional[int]
    author: str


@dataclass
class ContentItem:
    """A resolved content item, with placement data when read through a collection."""

    id: int
    kind: str
    caption: str
    description: str
    created_at: datetime
    updated_at: datetime
    data: Union[ImageData, TextData, CodeData, GifData]
    order_index: Optional[int] = None
    visible: Optional[bool] = None


def _image_data(row: ImageContent) -> ImageData:
    return ImageData(
        title=row.title,
        url=row.image_url_web,
        original_url=row.image_url_original,
        width=row.width,
        height=row.height,
        camera_make=row.camera_make,
        camera_model=row.camera_model,
        lens=row.lens,
        f_stop=row.f_stop,
        shutter_speed=row.shutter_speed,
        iso=row.iso,
        focal_length=row.focal_length,
        captured_at=row.captured_at,
        location=row.location,
        author=row.author,
        rating=row.rating,
        black_and_white=row.black_and_white,
        is_film=row.is_film,
    )


def _text_data(row: TextContent) -> TextData:
    return TextData(body=row.body, format=row.format)


def _code_data(row: CodeContent) -> CodeData:
    return CodeData(body=row.body, language=row.language, filename=row.filename, title=row.title)


def _gif_data(row: GifContent) -> GifData:
    return GifData(
        title=row.title,
        url=row.gif_url,
        thumbnail_url=row.thumbnail_url,
        width=row.width,
        height=row.height,
        author=row.author,
    )


READERS = {
    Kind.IMAGE: _image_data,
    Kind.TEXT: _text_data,
    Kind.CODE: _code_data,
    Kind.GIF: _gif_data,
}


def to_item(content: Content, placement=None) -> ContentItem:
    """
    Resolve a Content row into a ContentItem.

    When `placement` (a CollectionContent) is given, its caption override,
    order and visibility are applied.
    """
    reader = READERS.get(content.kind)
    if reader is None:
        raise ConfigurationError(f"unknown content type: {content.kind!r}")

    caption = content.caption
    order_index = visible = None
    if placement is not None:
        caption = placement.caption or content.caption
        order_index = placement.order_index
        visible = placement.visible

    return ContentItem(
        id=content.pk,
        kind=content.kind,
        caption=caption,
        description=content.description,
        created_at=content.created_at,
        updated_at=content.updated_at,
        data=reader(content.variant),
        order_index=order_index,
        visible=visible,
    )


# ============================================================================
# Creation
# ============================================================================


def full_clean(instance, exclude=None, **kwargs):
    """Run Django model validation, raising the gallery ValidationError."""
    try:
        instance.full_clean(exclude=exclude, **kwargs)
    except DjangoValidationError as exc:
        raise ValidationError.from_django(exc) from exc


def _require_text(value, field_name, label):
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} cannot be empty", field=field_name)


def _save(content: Content, variant):
    with transaction.atomic():
        content.save()
        variant.content = content
        variant.save()
    logger.info("Created %s content %s", content.kind, content.pk)
    return content


def _create_text(payload: TextPayload, blob_store=None) -> Content:
    _require_text(payload.body, "body", "Text content")
    content = Content(kind=Kind.TEXT, caption=payload.caption, description=payload.description)
    variant = TextContent(body=payload.body, format=payload.format)
    full_clean(content)
    full_clean(variant, exclude=["content"])
    return _save(content, variant)


def _create_code(payload: CodePayload, blob_store=None) -> Content:
    _require_text(payload.body, "body", "Code content")
    _require_text(payload.language, "language", "Language")
    content = Content(kind=Kind.CODE, caption=payload.caption, description=payload.description)
    variant = CodeContent(
        body=payload.body,
        language=payload.language.strip(),
        filename=payload.filename,
        title=payload.title,
    )
    full_clean(content)
    full_clean(variant, exclude=["content"])
    return _save(content, variant)


def file_identifier_for(filename: str, date=None) -> str:
    """YYYY-MM-DD/filename, the key used to spot re-uploads of the same file."""
    date = date or timezone.now().date()
    return f"{date.isoformat()}/{filename}"


def _upload(blob_store: BlobStore, data: bytes, kind: str, filename: str):
    """Store bytes, returning None (after logging) when the store refuses."""
    try:
        return blob_store.store(data, kind, filename)
    except BlobStoreError as exc:
        logger.warning("Upload of %s failed, no content created: %s", filename, exc)
        return None


# Camera fields an ImagePayload.metadata may set, the same ones read from EXIF
METADATA_FIELDS = frozenset(
    {
        "camera_make",
        "camera_model",
        "lens",
        "f_stop",
        "shutter_speed",
        "iso",
        "focal_length",
        "captured_at",
        "width",
        "height",
    }
)


def _create_image(payload: ImagePayload, blob_store=None) -> Optional[Content]:
    if not payload.data:
        raise ValidationError("Image file is empty", field="data")
    _require_text(payload.filename, "filename", "Filename")
    unknown = sorted(set(payload.metadata) - METADATA_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unsupported image metadata: {', '.join(unknown)}", field=unknown[0]
        )

    file_identifier = file_identifier_for(payload.filename)
    existing = (
        Content.objects.with_variants()
        .filter(kind=Kind.IMAGE, image__file_identifier=file_identifier)
        .first()
    )
    if existing is not None:
        logger.info("Image %s already uploaded as content %s", file_identifier, existing.pk)
        return existing

    fields = extract_image_metadata(payload.data, payload.filename)
    fields.update({k: v for k, v in payload.metadata.items() if v is not None})

    content = Content(kind=Kind.IMAGE, caption=payload.caption, description=payload.description)
    variant = ImageContent(
        title=payload.title or payload.filename,
        location=payload.location,
        author=payload.author,
        rating=payload.rating,
        black_and_white=payload.black_and_white,
        is_film=payload.is_film,
        file_identifier=file_identifier,
        **fields,
    )
    full_clean(content)
    full_clean(variant, exclude=["content", "image_url_web"])

    stored = _upload(blob_store or get_blob_store(), payload.data, Kind.IMAGE, payload.filename)
    if stored is None:
        return None

    variant.image_url_web = stored.url
    variant.image_url_original = stored.url
    return _save(content, variant)


def _create_gif(payload: GifPayload, blob_store=None) -> Optional[Content]:
    if not payload.data:
        raise ValidationError("Gif file is empty", field="data")
    _require_text(payload.filename, "filename", "Filename")

    dimensions = extract_image_metadata(payload.data, payload.filename)
    content = Content(kind=Kind.GIF, caption=payload.caption, description=payload.description)
    variant = GifContent(
        title=payload.title or payload.filename,
        author=payload.author,
        width=dimensions.get("width"),
        height=dimensions.get("height"),
        file_identifier=file_identifier_for(payload.filename),
    )
    full_clean(content)
    full_clean(variant, exclude=["content", "gif_url"])

    stored = _upload(blob_store or get_blob_store(), payload.data, Kind.GIF, payload.filename)
    if stored is None:
        return None

    variant.gif_url = stored.url
    variant.thumbnail_url = stored.thumbnail_url or ""
    return _save(content, variant)


CREATORS = {
    Kind.IMAGE: (ImagePayload, _create_image),
    Kind.TEXT: (TextPayload, _create_text),
    Kind.CODE: (CodePayload, _create_code),
    Kind.GIF: (GifPayload, _create_gif),
}


def create_content(kind, payload, blob_store: Optional[BlobStore] = None) -> Optional[Content]:
    """
    Create and persist a content item of `kind` from `payload`.

    Returns None when an image/gif upload is refused by the blob store, so the
    caller can retry or give up without a half-populated record.

    Raises:
        ConfigurationError: unknown kind, or a payload of the wrong type
        ValidationError: blank bodies, size limits and other field errors
    """
    if kind not in CREATORS:
        raise ConfigurationError(f"unknown content type: {kind!r}")

    payload_type, creator = CREATORS[kind]
    if not isinstance(payload, payload_type):
        raise ConfigurationError(
            f"{kind} content expects {payload_type.__name__}, got {type(payload).__name__}"
        )
    return creator(payload, blob_store=blob_store)
