"""
Creation-time defaults keyed by collection type.
"""

from django.conf import settings

from .models import Collection

CollectionType = Collection.CollectionType

DEFAULT_PRIORITY = 4

BASE_DEFAULTS = {
    "content_per_page": 30,
    "visible": True,
    "display_mode": Collection.DisplayMode.ORDERED,
    "priority": DEFAULT_PRIORITY,
}

# Only the differences from BASE_DEFAULTS
TYPE_DEFAULTS = {
    CollectionType.BLOG: {
        "display_mode": Collection.DisplayMode.CHRONOLOGICAL,
    },
    CollectionType.PORTFOLIO: {},
    CollectionType.ART_GALLERY: {},
    CollectionType.CLIENT_GALLERY: {
        "content_per_page": 50,
        "visible": False,
    },
}


def defaults_for(collection_type) -> dict:
    """Return the merged defaults for a type, including settings overrides."""
    if collection_type not in TYPE_DEFAULTS:
        raise ValueError(f"Unknown collection type: {collection_type}")

    defaults = dict(BASE_DEFAULTS)
    defaults.update(TYPE_DEFAULTS[collection_type])

    overrides = getattr(settings, "GALLERY_TYPE_DEFAULTS", {}) or {}
    defaults.update(overrides.get(str(collection_type), {}))
    return defaults


def apply_type_defaults(collection_type, values: dict) -> dict:
    """
    Fill fields the caller left unset (missing or None).

    Values the caller provided, including False and 0, are kept as-is.
    Returns a new dict; `values` is not modified.
    """
    result = dict(values)
    for field, default in defaults_for(collection_type).items():
        if result.get(field) is None:
            result[field] = default
    return result
