from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Text layer recovered from a PDF by one of the PDF engines."""

    text: str
    page_count: int
    table_count: int = 0
