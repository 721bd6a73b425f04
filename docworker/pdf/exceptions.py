class PdfError(Exception):
    """Base exception for PDF and page rendering helpers."""


class PdfExtractionError(PdfError):
    """Raised when text cannot be extracted from a document."""


class PdfRenderError(PdfError):
    """Raised when a page cannot be rendered to an image."""
