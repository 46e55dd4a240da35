"""
Public read/write surface of the gallery app.

Thin API layers should only need what is exported here.
"""

from .collections import (
    add_code,
    add_gif,
    add_image,
    add_text,
    check_access,
    clear_password,
    create_collection,
    delete_collection,
    delete_content,
    get_collection,
    get_collection_by_slug,
    list_collections,
    set_password,
    update_collection,
)
from .composition import (
    add_content,
    get_all,
    get_page,
    kind_counts,
    list_ordered,
    remove_content,
    update_placement,
)
from .reorder import ReorderInstruction, reorder

__all__ = [
    # Collections
    "create_collection",
    "update_collection",
    "delete_collection",
    "get_collection",
    "get_collection_by_slug",
    "list_collections",
    # Password gate
    "set_password",
    "clear_password",
    "check_access",
    # Content ingestion
    "add_text",
    "add_code",
    "add_image",
    "add_gif",
    "delete_content",
    # Placements
    "add_content",
    "remove_content",
    "update_placement",
    "list_ordered",
    "kind_counts",
    # Reads
    "get_page",
    "get_all",
    # Reorder
    "ReorderInstruction",
    "reorder",
]
