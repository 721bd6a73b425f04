from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract plain text from PDF bytes, one string per page.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Stripped page texts in page order. Blank pages yield "".

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
