"""
Error types shared across the postdesk services.

Route handlers translate these into `{"success": False, ...}` JSON bodies;
anything else that escapes a handler is caught by the gateway's
application-wide error handler.
"""


class PostdeskError(Exception):
    """Base class for all expected application errors."""


class ValidationError(PostdeskError):
    """Missing or malformed request input."""


class DuplicateKey(PostdeskError):
    """A unique constraint was violated (e.g. username already taken)."""


class NotFound(PostdeskError):
    """The requested row does not exist."""


class UploadFailed(PostdeskError):
    """The media host rejected the upload or no media was provided."""


class DeliveryFailed(PostdeskError):
    """A notification email could not be sent."""


class UpstreamGenerationError(PostdeskError):
    """The text-generation service failed to produce a caption."""


class ConfigError(PostdeskError, RuntimeError):
    """Required configuration is missing or malformed."""
