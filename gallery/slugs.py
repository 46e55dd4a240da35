"""
Slug normalisation and uniqueness resolution for collections.
"""

import logging
import re

from django.conf import settings

from .exceptions import ConflictError

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUNS = re.compile(r"-+")


def normalize_slug(text: str) -> str:
    """
    Turn a title into a candidate slug.

    "Sunset at Big Sur!" -> "sunset-at-big-sur"
    """
    if not text:
        return ""
    slug = _INVALID_CHARS.sub("", text.strip().lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


def slug_max_length() -> int:
    from .models import Collection

    return Collection._meta.get_field("slug").max_length


def _with_suffix(candidate: str, counter: int, max_length: int) -> str:
    suffix = f"-{counter}"
    base = candidate[: max_length - len(suffix)].rstrip("-")
    return f"{base}{suffix}"


def slug_exists(slug: str, exclude_id=None) -> bool:
    from .models import Collection

    queryset = Collection.objects.filter(slug=slug)
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.exists()


def resolve_unique_slug(candidate: str, exclude_id=None) -> str:
    """
    Return `candidate` if free, else the first free `candidate-1`, `candidate-2`, ...

    The probe is sequential so the result is deterministic. `exclude_id` keeps a
    collection from colliding with its own current slug during updates.
    Suffixed slugs are cut back so they stay within the slug column length.
    """
    max_length = slug_max_length()
    candidate = candidate[:max_length].rstrip("-")
    if not slug_exists(candidate, exclude_id):
        return candidate

    max_attempts = getattr(settings, "GALLERY_SLUG_MAX_ATTEMPTS", 100)
    for counter in range(1, max_attempts + 1):
        slug = _with_suffix(candidate, counter, max_length)
        if not slug_exists(slug, exclude_id):
            logger.info("Slug '%s' taken, using '%s'", candidate, slug)
            return slug

    raise ConflictError(
        f"Could not find a free slug for '{candidate}' after {max_attempts} attempts"
    )
