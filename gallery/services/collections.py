"""
Collection lifecycle: create, update, delete, password gate, and the
add_* helpers that ingest content straight into a collection.
"""

import logging

from django.db import IntegrityError, transaction

from ..content import (
    CodePayload,
    GifPayload,
    ImagePayload,
    TextPayload,
    create_content,
    full_clean,
)
from ..defaults import apply_type_defaults
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models import Collection, CollectionContent, Content
from ..passwords import generate_salt, hash_password, verify_password
from ..slugs import normalize_slug, resolve_unique_slug, slug_exists
from .composition import add_content, load_collection

logger = logging.getLogger(__name__)

# Fields callers may set directly on create/update
EDITABLE_FIELDS = {
    "title",
    "slug",
    "description",
    "location",
    "collection_date",
    "visible",
    "priority",
    "content_per_page",
    "display_mode",
}

SLUG_SAVE_ATTEMPTS = 5
MIN_SLUG_LENGTH = 3


def _check_fields(fields):
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown collection field(s): {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0],
        )


def _slug_candidate(source, field):
    candidate = normalize_slug(source or "")
    if len(candidate) < MIN_SLUG_LENGTH:
        raise ValidationError(
            f"'{source}' does not give a slug of at least {MIN_SLUG_LENGTH} characters",
            field=field,
        )
    return candidate


def _apply_cover(collection, cover_image_id):
    if cover_image_id == 0:
        collection.cover_image = None
        return
    try:
        cover = Content.objects.get(pk=cover_image_id)
    except Content.DoesNotExist:
        raise NotFoundError("content", cover_image_id)
    if cover.kind != Content.Kind.IMAGE:
        raise ValidationError(
            f"Content {cover.pk} is {cover.kind}, not an image", field="cover_image"
        )
    collection.cover_image = cover


def _apply_password(collection, password):
    collection.password_salt = generate_salt()
    collection.password_hash = hash_password(password, collection.password_salt)
    collection.is_password_protected = True


def _save_with_unique_slug(collection, candidate):
    """
    Save under the first free variant of `candidate`.

    Two writers can pick the same free slug at once; the unique constraint
    rejects the loser, which probes again.
    """
    for _ in range(SLUG_SAVE_ATTEMPTS):
        collection.slug = resolve_unique_slug(candidate, exclude_id=collection.pk)
        full_clean(collection, validate_unique=False)
        try:
            with transaction.atomic():
                collection.save()
            return collection
        except IntegrityError:
            if not slug_exists(collection.slug, exclude_id=collection.pk):
                raise
            logger.warning("Slug '%s' was taken concurrently, retrying", collection.slug)
    raise ConflictError(f"Could not save collection with slug based on '{candidate}'")


def get_collection(collection_id) -> Collection:
    return load_collection(collection_id)


def get_collection_by_slug(slug) -> Collection:
    try:
        return Collection.objects.get(slug=slug)
    except Collection.DoesNotExist:
        raise NotFoundError("collection", slug)


def list_collections(collection_type=None, visible_only=False):
    """Collections by priority, then newest first."""
    queryset = Collection.objects.all()
    if collection_type is not None:
        queryset = queryset.by_type(collection_type)
    if visible_only:
        queryset = queryset.visible()
    return queryset.listing_order()


def create_collection(collection_type, title, password=None, **fields) -> Collection:
    """
    Create a collection, filling type defaults for anything not supplied.

    The slug comes from `slug` when given, otherwise from the title, and is
    suffixed (-1, -2, ...) until unique.
    """
    if collection_type not in Collection.CollectionType.values:
        raise ValidationError(
            f"Unknown collection type: {collection_type!r}", field="collection_type"
        )
    _check_fields(fields)

    values = apply_type_defaults(collection_type, fields)
    slug = values.pop("slug", None)
    if slug:
        candidate = _slug_candidate(slug, "slug")
    else:
        candidate = _slug_candidate(title, "title")

    values.pop("title", None)
    collection = Collection(collection_type=collection_type, title=title, **values)
    if password:
        _apply_password(collection, password)

    _save_with_unique_slug(collection, candidate)
    logger.info(
        "Created %s collection %s (%s)",
        collection.collection_type,
        collection.pk,
        collection.slug,
    )
    return collection


def update_collection(
    collection_id, password=None, clear_password=False, cover_image_id=None, **fields
) -> Collection:
    """
    Partial update: fields passed as None are left alone.

    A new slug is re-resolved against every other collection; a content_per_page
    below 1 is ignored. `cover_image_id` picks an existing image as the cover,
    and 0 clears it.
    """
    _check_fields(fields)

    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)

        new_slug = fields.pop("slug", None)
        per_page = fields.pop("content_per_page", None)
        if per_page is not None and per_page >= 1:
            collection.content_per_page = per_page

        for name, value in fields.items():
            if value is not None:
                setattr(collection, name, value)

        if clear_password:
            collection.password_hash = ""
            collection.password_salt = ""
            collection.is_password_protected = False
        elif password:
            _apply_password(collection, password)

        if cover_image_id is not None:
            _apply_cover(collection, cover_image_id)

        if new_slug and new_slug.strip():
            candidate = _slug_candidate(new_slug, "slug")
            if candidate != collection.slug:
                _save_with_unique_slug(collection, candidate)
                logger.info("Collection %s slug changed to %s", collection.pk, collection.slug)
                return collection

        full_clean(collection, validate_unique=False)
        collection.save()
    return collection


def delete_collection(collection_id):
    """Delete a collection and its placements. Content items are kept."""
    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        placements = CollectionContent.objects.for_collection(collection.pk).count()
        collection.delete()

    logger.info("Deleted collection %s, released %s placement(s)", collection_id, placements)


def set_password(collection_id, plaintext) -> Collection:
    """Protect a collection with a password."""
    if plaintext is None:
        raise TypeError("password must not be None")
    if not plaintext:
        raise ValidationError("Password cannot be empty", field="password")

    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        _apply_password(collection, plaintext)
        collection.save(
            update_fields=["password_hash", "password_salt", "is_password_protected", "updated_at"]
        )
    logger.info("Password set for collection %s", collection.pk)
    return collection


def clear_password(collection_id) -> Collection:
    return update_collection(collection_id, clear_password=True)


def check_access(collection: Collection, candidate) -> bool:
    """
    Whether `candidate` opens `collection`.

    Unprotected collections are always open; a protected collection without a
    stored hash and an empty candidate are both refused.
    """
    if not collection.is_password_protected:
        return True
    if not collection.password_hash or not candidate:
        return False
    return verify_password(candidate, collection.password_hash, collection.password_salt)


def delete_content(content_id):
    """Delete a content item that no collection references."""
    with transaction.atomic():
        try:
            content = Content.objects.select_for_update().get(pk=content_id)
        except Content.DoesNotExist:
            raise NotFoundError("content", content_id)
        in_use = CollectionContent.objects.filter(content_id=content.pk).count()
        if in_use:
            raise ConflictError(f"Content {content.pk} is still placed in {in_use} collection(s)")
        content.delete()
    logger.info("Deleted content %s", content_id)


def _add(collection_id, kind, payload, blob_store=None, **placement):
    # Fail before any upload when the collection is missing
    load_collection(collection_id)
    content = create_content(kind, payload, blob_store=blob_store)
    if content is None:
        return None
    if CollectionContent.objects.filter(
        collection_id=collection_id, content_id=content.pk
    ).exists():
        # Re-upload of an image already placed here
        return content
    add_content(collection_id, content.pk, **placement)
    return content


def add_text(collection_id, payload: TextPayload, **placement):
    return _add(collection_id, Content.Kind.TEXT, payload, **placement)


def add_code(collection_id, payload: CodePayload, **placement):
    return _add(collection_id, Content.Kind.CODE, payload, **placement)


def add_image(collection_id, payload: ImagePayload, blob_store=None, **placement):
    """Upload an image and append it; returns None if the upload failed."""
    return _add(collection_id, Content.Kind.IMAGE, payload, blob_store=blob_store, **placement)


def add_gif(collection_id, payload: GifPayload, blob_store=None, **placement):
    """Upload a gif and append it; returns None if the upload failed."""
    return _add(collection_id, Content.Kind.GIF, payload, blob_store=blob_store, **placement)
