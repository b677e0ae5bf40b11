# ABOUTME: Exception hierarchy for PDF to EPUB conversion failures.
# ABOUTME: Filesystem failures are not wrapped; they surface as OSError.


class ConversionError(Exception):
    """Base class for conversion failures."""


class ConversionInputError(ConversionError):
    """Raised before any work when an input path or reference is unusable."""


class ConversionContentError(ConversionError):
    """Raised when the input is readable but yields nothing to package."""


class ConversionFormatError(ConversionError):
    """Raised when the PDF engine cannot open the document or render a page."""


class ConversionCancelled(ConversionError):
    """Raised when the caller's cancellation check asks to stop between pages."""
