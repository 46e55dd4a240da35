"""
Batch reordering of a collection's placements.

The whole batch is validated before anything is written, then applied with a
single bulk update while the collection row is locked. Either every
instruction takes effect or none does.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

from django.db import transaction
from django.utils import timezone

from ..exceptions import ValidationError
from ..models import CollectionContent
from ..pagination import PagedView
from .composition import get_page, load_collection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReorderInstruction:
    content_id: int
    order_index: int


def _coerce(instruction) -> ReorderInstruction:
    if isinstance(instruction, ReorderInstruction):
        return instruction
    if isinstance(instruction, dict):
        try:
            return ReorderInstruction(instruction["content_id"], instruction["order_index"])
        except KeyError as exc:
            raise ValidationError(f"Reorder instruction is missing {exc.args[0]}") from exc
    try:
        content_id, order_index = instruction
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed reorder instruction: {instruction!r}") from exc
    return ReorderInstruction(content_id, order_index)


def plan_reorder(
    links_by_content: Dict[int, CollectionContent],
    instructions: List[ReorderInstruction],
) -> Dict[int, int]:
    """
    Validate a batch against the current links and return {content_id: new_index}.

    Rejects unknown content ids, negative indices, content listed twice, two
    targets sharing an index, and targets landing on an index held by a link
    the batch does not move.
    """
    targets: Dict[int, int] = {}
    for instruction in instructions:
        content_id, order_index = instruction.content_id, instruction.order_index

        if content_id not in links_by_content:
            raise ValidationError(
                f"Content {content_id} is not in this collection", field="content_id"
            )
        if not isinstance(order_index, int) or isinstance(order_index, bool) or order_index < 0:
            raise ValidationError(
                f"Invalid order index {order_index!r} for content {content_id}",
                field="order_index",
            )
        if content_id in targets:
            raise ValidationError(
                f"Content {content_id} appears more than once in the batch", field="content_id"
            )
        targets[content_id] = order_index

    seen: Dict[int, int] = {}
    for content_id, order_index in targets.items():
        if order_index in seen:
            raise ValidationError(
                f"Content {seen[order_index]} and {content_id} both target index {order_index}",
                field="order_index",
            )
        seen[order_index] = content_id

    untouched = {
        link.order_index: content_id
        for content_id, link in links_by_content.items()
        if content_id not in targets
    }
    for content_id, order_index in targets.items():
        if order_index in untouched:
            raise ValidationError(
                f"Index {order_index} for content {content_id} is held by content "
                f"{untouched[order_index]}, which is not being moved",
                field="order_index",
            )

    return targets


def reorder(collection_id, instructions: Iterable) -> PagedView:
    """
    Apply new order indices to some or all of a collection's placements.

    Returns the first page of the collection after the change.
    """
    batch = [_coerce(instruction) for instruction in instructions]

    with transaction.atomic():
        collection = load_collection(collection_id, lock=True)
        if batch:
            links_by_content = {
                link.content_id: link
                for link in CollectionContent.objects.for_collection(collection.pk)
            }
            targets = plan_reorder(links_by_content, batch)

            now = timezone.now()
            changed = []
            for content_id, order_index in targets.items():
                link = links_by_content[content_id]
                if link.order_index != order_index:
                    link.order_index = order_index
                    link.updated_at = now
                    changed.append(link)

            if changed:
                CollectionContent.objects.bulk_update(changed, ["order_index", "updated_at"])
            logger.info(
                "Reordered collection %s: %s instruction(s), %s link(s) moved",
                collection.pk,
                len(batch),
                len(changed),
            )

    return get_page(collection_id, page=1)
