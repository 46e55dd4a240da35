"""
Password hashing for protected collections.

Hashes are PBKDF2-HMAC-SHA256 over the UTF-8 password bytes with a
per-collection salt, rendered as lowercase hex. The same password and salt
always produce the same hash.
"""

from django.conf import settings
from django.utils.crypto import constant_time_compare, get_random_string, pbkdf2

SALT_LENGTH = 32
DEFAULT_ITERATIONS = 260000


def _iterations() -> int:
    return getattr(settings, "GALLERY_PASSWORD_ITERATIONS", DEFAULT_ITERATIONS)


def generate_salt() -> str:
    return get_random_string(SALT_LENGTH)


def hash_password(password: str, salt: str = "") -> str:
    """Hash `password` with `salt`. Raises TypeError on None."""
    if password is None:
        raise TypeError("password must not be None")
    if salt is None:
        raise TypeError("salt must not be None")
    digest = pbkdf2(password, salt, _iterations())
    return digest.hex()


def verify_password(candidate: str, stored_hash: str, salt: str = "") -> bool:
    """Check `candidate` against a stored hash in constant time."""
    if candidate is None or stored_hash is None:
        raise TypeError("candidate and stored_hash must not be None")
    return constant_time_compare(hash_password(candidate, salt), stored_hash)
