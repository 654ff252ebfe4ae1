class TaintedSurfaceError(Exception):
    """Raised when a raster surface refuses to export cross-origin pixels."""


class DocumentUnavailableError(Exception):
    """Raised when a whole resolution pass cannot run (no usable document)."""


class UnsupportedDocumentError(DocumentUnavailableError):
    """Raised for page addresses that cannot be inspected (browser-internal schemes)."""
