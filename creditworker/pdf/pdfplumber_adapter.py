import io

import pdfplumber

from creditworker.pdf.base import BasePdfExtractor
from creditworker.pdf.exceptions import PdfExtractionError
from creditworker.pdf.models import PdfText


class PdfPlumberAdapter(BasePdfExtractor):
    """Reads the PDF text layer with pdfplumber and counts ruled tables."""

    name = "pdfplumber"

    def extract(self, pdf_bytes: bytes) -> PdfText:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = []
                tables = 0
                for page in pdf.pages:
                    pages.append(page.extract_text() or "")
                    tables += len(page.find_tables())
                return PdfText(
                    text="\n".join(pages).strip(),
                    page_count=len(pdf.pages),
                    table_count=tables,
                )
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
