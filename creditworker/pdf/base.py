from abc import ABC, abstractmethod

from creditworker.pdf.models import PdfText


class BasePdfExtractor(ABC):
    """Contract for local PDF text layer readers."""

    name: str

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Read the embedded text layer of a PDF.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            The page texts joined with newlines, plus page and table counts.
            Scanned PDFs without a text layer return empty text.

        Raises:
            PdfExtractionError: if the file cannot be opened as a PDF.
        """
