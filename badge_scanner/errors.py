"""Exception hierarchy for the badge scanning pipeline.

Pre-processing and recognition errors abort a scan attempt. The field
parser never raises; incomplete parses are reported by the scan pipeline
as :class:`IncompleteExtractionError`.
"""


class BadgeScanError(Exception):
    """Base class for all badge scanning failures."""


class CameraUnavailableError(BadgeScanError):
    """Raised when the capture device cannot be opened."""


class ImageAccessError(BadgeScanError):
    """Raised when pixel data cannot be read from the supplied image."""


class ImageDecodeError(BadgeScanError):
    """Raised when encoded image bytes cannot be decoded."""


class RecognitionUnavailableError(BadgeScanError):
    """Raised when the Tesseract binary is not installed or not reachable."""


class EmptyResultError(BadgeScanError):
    """Raised when OCR returns no text at all."""


class IncompleteExtractionError(BadgeScanError):
    """Raised when required badge fields could not be resolved.

    Args:
        missing_fields: Names of the required fields left unresolved.
    """

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(
            "Failed to parse essential information from the badge: "
            + ", ".join(missing_fields)
        )
