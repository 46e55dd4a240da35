"""
Signal handlers for the gallery app.

Keeps cached placement counters honest when content rows disappear outside
the collection service (cascades, shell deletes).
"""

import logging

from django.db import transaction
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from gallery.models import CollectionContent, Content

logger = logging.getLogger(__name__)


@receiver(pre_delete, sender=Content)
def schedule_recount_on_content_delete(sender, instance, **kwargs):
    """
    Queue a total_content recount for every collection that placed this content.

    Deleting a Content row cascades to its placements without going through
    remove_content(), so the counters of those collections would drift.
    """
    collection_ids = list(
        CollectionContent.objects.filter(content_id=instance.pk)
        .order_by()
        .values_list("collection_id", flat=True)
        .distinct()
    )
    if not collection_ids:
        return

    from gallery.tasks import recount_collection_totals

    logger.info(
        f"Content {instance.pk} deleted while placed in {len(collection_ids)} "
        f"collection(s); scheduling recount"
    )
    transaction.on_commit(lambda: recount_collection_totals.delay(collection_ids))
