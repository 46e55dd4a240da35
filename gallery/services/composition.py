"""
Placement of content inside collections, and the paginated read paths.

Every write locks the collection row (select_for_update) inside
transaction.atomic(), so operations on one collection are serialised while
different collections proceed independently.
"""

import logging

from django.db import transaction
from django.db.models import Count, Max

from ..content import to_item
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models import Collection, CollectionContent, Content
from ..pagination import (
    PagedView,
    build_paged_view,
    max_page_size,
    page_offset,
    validate_page_request,
)

logger = logging.getLogger(__name__)


def load_collection(collection_id, lock=False) -> Collection:
    """Fetch a collection, locking its row when `lock` is set (requires a transaction)."""
    queryset = Collection.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=collection_id)
    except Collection.DoesNotExist:
        raise NotFoundError("collection", collection_id)


def load_content(content_id) -> Content:
    try:
        return Content.objects.get(pk=content_id)
    except Content.DoesNotExist:
        raise NotFoundError("content", content_id)


def next_order_index(collection_id) -> int:
    """One past the highest index in use, 0 for an empty collection."""
    highest = CollectionContent.objects.filter(collection_id=collection_id).aggregate(
        highest=Max("order_index")
    )["highest"]
    return 0 if highest is None else highest + 1


def list_ordered(collection_id, visible_only=False):
    """
    Links of a collection in display order.

    Returns a lazy queryset; iterating it again re-runs the query.
    """
    queryset = CollectionContent.objects.for_collection(collection_id)
    if visible_only:
        queryset = queryset.visible()
    return queryset.ordered()


def kind_counts(collection_id, visible_only=False) -> dict:
    """Number of placements per content kind across the whole collection."""
    rows = (
        list_ordered(collection_id, visible_only)
        .order_by()
        .values("content__kind")
        .annotate(total=Count("id"))
    )
    return {row["content__kind"]: row["total"] for row in rows}


def _first_image(collection_id, exclude_content_id=None):
    links = list_ordered(collection_id).filter(content__kind=Content.Kind.IMAGE)
    if exclude_content_id is not None:
        links = links.exclude(content_id=exclude_content_id)
    link = links.first()
    return link.content_id if link else None


def add_content(
    collection_id,
    content_id,
    order_index=None,
    visible=True,
    caption="",
    allow_append=False,
) -> CollectionContent:
    """
    Place a content item in a collection.

    With `order_index=None` the item goes to the end. An index already in use
    raises ConflictError, unless `allow_append` is set, in which case the item
    goes to the end instead.
    """
    if order_index is not None and order_index < 0:
        raise ValidationError("Order index cannot be negative", field="order_index")

    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        content = load_content(content_id)

        links = CollectionContent.objects.for_collection(collection.pk)
        if links.filter(content_id=content.pk).exists():
            raise ConflictError(
                f"Content {content.pk} is already in collection {collection.pk}"
            )

        if order_index is not None and links.filter(order_index=order_index).exists():
            if not allow_append:
                raise ConflictError(
                    f"Order index {order_index} is already used in collection {collection.pk}"
                )
            order_index = None

        if order_index is None:
            order_index = next_order_index(collection.pk)

        link = CollectionContent.objects.create(
            collection=collection,
            content=content,
            order_index=order_index,
            visible=visible,
            caption=caption or "",
        )

        collection.total_content += 1
        update_fields = ["total_content", "updated_at"]
        if collection.cover_image_id is None and content.kind == Content.Kind.IMAGE:
            collection.cover_image = content
            update_fields.append("cover_image")
        collection.save(update_fields=update_fields)

    logger.info(
        "Added %s content %s to collection %s at index %s",
        content.kind,
        content.pk,
        collection.pk,
        order_index,
    )
    return link


def remove_content(collection_id, content_id):
    """Remove a placement. The content item itself is kept."""
    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        deleted, _ = CollectionContent.objects.filter(
            collection_id=collection.pk, content_id=content_id
        ).delete()
        if not deleted:
            raise NotFoundError("placement", f"{collection.pk}:{content_id}")

        collection.total_content = max(collection.total_content - 1, 0)
        update_fields = ["total_content", "updated_at"]
        if collection.cover_image_id == content_id:
            collection.cover_image_id = _first_image(collection.pk)
            update_fields.append("cover_image")
        collection.save(update_fields=update_fields)

    logger.info("Removed content %s from collection %s", content_id, collection_id)


def update_placement(collection_id, content_id, visible=None, caption=None) -> CollectionContent:
    """Change a placement's visibility and/or caption override; None leaves a field as-is."""
    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        try:
            link = CollectionContent.objects.get(
                collection_id=collection.pk, content_id=content_id
            )
        except CollectionContent.DoesNotExist:
            raise NotFoundError("placement", f"{collection.pk}:{content_id}")

        update_fields = ["updated_at"]
        if visible is not None:
            link.visible = visible
            update_fields.append("visible")
        if caption is not None:
            if len(caption) > 500:
                raise ValidationError("Caption is limited to 500 characters", field="caption")
            link.caption = caption
            update_fields.append("caption")
        link.save(update_fields=update_fields)
    return link


def get_page(collection_id, page=1, page_size=None, visible_only=False) -> PagedView:
    """
    One page of a collection's content, page numbers starting at 1.

    `page_size` defaults to the collection's own content_per_page.
    """
    collection = load_collection(collection_id)
    if page_size is None:
        page_size = min(collection.content_per_page, max_page_size())
    validate_page_request(page, page_size)

    links = list_ordered(collection.pk, visible_only)
    total = links.count()
    offset = page_offset(page, page_size)
    page_links = links.with_content()[offset:offset + page_size]

    return build_paged_view(
        [to_item(link.content, link) for link in page_links],
        page=page,
        page_size=page_size,
        total_elements=total,
        kind_counts=kind_counts(collection.pk, visible_only),
    )


def get_all(collection_id, visible_only=False) -> list:
    """Every item of a collection in order, without pagination."""
    collection = load_collection(collection_id)
    links = list_ordered(collection.pk, visible_only).with_content()
    return [to_item(link.content, link) for link in links]
