"""Error taxonomy shared by the archive, slideshow, and export layers."""


class SlideLibError(Exception):
    """Base exception for SlideLib operations."""


class NotFoundError(SlideLibError):
    """Raised when an item, slideshow, or file no longer exists."""


class InvalidIdError(SlideLibError):
    """Raised when an item identifier cannot be decoded."""


class ConflictError(SlideLibError):
    """Raised when an operation would violate a store invariant."""


class EmptyOrMissingSlideshowError(SlideLibError):
    """Raised when an export target has nothing to render."""


class ExternalToolError(SlideLibError):
    """Raised when image conversion fails; always absorbed by callers."""


class PersistenceError(SlideLibError):
    """Raised when a persisted document cannot be read or written."""


__all__ = [
    "SlideLibError",
    "NotFoundError",
    "InvalidIdError",
    "ConflictError",
    "EmptyOrMissingSlideshowError",
    "ExternalToolError",
    "PersistenceError",
]
