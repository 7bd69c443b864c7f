"""Custom exceptions for Image Harvester."""


class HarvesterError(Exception):
    """Base exception for Image Harvester."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", context: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}


class SurfaceUnavailableError(HarvesterError):
    """No surface of the requested page can be scanned."""

    def __init__(self, message: str = "Cannot scan browser-restricted pages.", context: dict = None):
        super().__init__(message, "SURFACE_UNAVAILABLE", context)


class NoImagesFoundError(HarvesterError):
    """Discovery ran but the merged inventory is empty."""

    def __init__(self, message: str = "No images found.", context: dict = None):
        super().__init__(message, "NO_IMAGES_FOUND", context)


class DiscoveryUnavailableError(HarvesterError):
    """Every surface walk failed before producing a collection."""

    def __init__(self, message: str = "Could not read the page. Try refreshing it.", context: dict = None):
        super().__init__(message, "DISCOVERY_UNAVAILABLE", context)


class RasterAccessError(HarvesterError):
    """Raised by tree adapters when a canvas pixel buffer cannot be encoded."""

    def __init__(self, message: str = "Raster buffer is not readable", context: dict = None):
        super().__init__(message, "RASTER_ACCESS_RESTRICTED", context)


class HandleResolutionError(HarvesterError):
    """Raised by handle resolvers when an ephemeral handle cannot be fetched."""

    def __init__(self, message: str = "Ephemeral handle could not be resolved", context: dict = None):
        super().__init__(message, "HANDLE_RESOLUTION_FAILED", context)


class ExportError(HarvesterError):
    """Raised when a record cannot be written to disk."""

    def __init__(self, message: str, context: dict = None):
        super().__init__(message, "EXPORT_FAILED", context)


# Errors meant to reach a human, keyed to their exit code in the CLI
USER_FACING_ERRORS = (SurfaceUnavailableError, NoImagesFoundError, DiscoveryUnavailableError)
