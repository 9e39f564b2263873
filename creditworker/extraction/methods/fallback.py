from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import MethodFailedError
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput
from creditworker.logging.logger import Log
from creditworker.pdf.base import BasePdfExtractor
from creditworker.pdf.byte_scanner import scan_text
from creditworker.pdf.exceptions import PdfExtractionError
from creditworker.pdf.factory import PdfExtractorFactory
from creditworker.pdf.pdfplumber_adapter import PdfPlumberAdapter


class LocalFallbackMethod(BaseExtractionMethod):
    """Local text recovery that needs no credentials and makes no network call.

    Reads the PDF text layer with the configured PDF engine first. When the
    engine cannot open the file or finds no text, the raw bytes are scanned
    for text objects instead.
    """

    name = ExtractionMethodName.FALLBACK
    network_bound = False

    def __init__(self, pdf_extractor: BasePdfExtractor | None = None) -> None:
        self._pdf_extractor = pdf_extractor or PdfPlumberAdapter()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalFallbackMethod":
        return cls(PdfExtractorFactory.create(settings))

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        engine = self._pdf_extractor.name
        try:
            pdf_text = self._pdf_extractor.extract(document.content)
        except PdfExtractionError as exc:
            Log.info(
                f"{engine} could not read the document, scanning raw bytes: {exc}",
                report_id=document.report_id,
                method=self.name.value,
            )
        else:
            if pdf_text.text:
                return MethodOutput(
                    text=pdf_text.text,
                    has_structured_data=pdf_text.table_count > 0,
                    metadata={
                        "source": "text_layer",
                        "engine": engine,
                        "pages": pdf_text.page_count,
                        "tables": pdf_text.table_count,
                    },
                )

        text = scan_text(document.content)
        if not text:
            raise MethodFailedError("no readable text found in document", retryable=False)
        return MethodOutput(text=text, metadata={"source": "byte_scan"})
