"""
Error taxonomy for the gallery app.

Services raise these instead of Django's own exceptions so callers can tell
caller mistakes (ValidationError), missing records (NotFoundError), state
clashes (ConflictError) and programmer defects (ConfigurationError) apart.
Database and storage failures are not wrapped and propagate as-is.
"""

from django.core.exceptions import ValidationError as DjangoValidationError


class GalleryError(Exception):
    """Base class for gallery domain errors."""


class ValidationError(GalleryError):
    """Malformed or out-of-range input."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self):
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message

    @classmethod
    def from_django(cls, exc: DjangoValidationError) -> "ValidationError":
        """Build from a Django ValidationError, keeping the first offending field."""
        if hasattr(exc, "error_dict"):
            field, errors = next(iter(exc.message_dict.items()))
            return cls(errors[0], field=field)
        return cls(exc.messages[0])


class NotFoundError(GalleryError):
    """A referenced collection or content item does not exist."""

    def __init__(self, resource, identifier=None):
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} {identifier} not found"
        super().__init__(message)


class ConflictError(GalleryError):
    """Duplicate placement, duplicate order index or unresolved slug clash."""


class ConfigurationError(GalleryError):
    """Unknown content kind or other wiring defect."""


class BlobStoreError(GalleryError):
    """The blob store could not persist an upload."""
