"""
Celery tasks for the gallery app.

To run a worker: celery -A PortfolioProject worker -l info
"""

import logging

from celery import shared_task
from django.db import transaction
from django.db.models import Count

logger = logging.getLogger(__name__)


def recount_totals(collection_ids=None, dry_run=False):
    """
    Rebuild Collection.total_content from the placement table.

    Returns a dict of {collection_id: (old_total, new_total)} for every
    collection whose cached value was wrong.
    """
    from .models import Collection

    queryset = Collection.objects.annotate(actual=Count("placements"))
    if collection_ids is not None:
        queryset = queryset.filter(pk__in=collection_ids)

    corrections = {}
    for collection in queryset.only("id", "total_content"):
        if collection.total_content != collection.actual:
            corrections[collection.pk] = (collection.total_content, collection.actual)

    if corrections and not dry_run:
        with transaction.atomic():
            for collection_id, (_, actual) in corrections.items():
                Collection.objects.filter(pk=collection_id).update(total_content=actual)

    return corrections


@shared_task
def recount_collection_totals(collection_ids=None):
    """
    Recount cached placement totals.

    Args:
        collection_ids: Limit to these collections (all when None)

    Returns:
        Dict with recount results
    """
    try:
        corrections = recount_totals(collection_ids)
    except Exception as e:
        logger.error(f"Recount of collection totals failed: {e}")
        return {"success": False, "error": str(e)}

    if corrections:
        logger.info(f"Corrected total_content on {len(corrections)} collection(s)")
    return {
        "success": True,
        "corrected": len(corrections),
        "collection_ids": sorted(corrections),
    }
