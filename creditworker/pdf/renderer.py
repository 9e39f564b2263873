import pymupdf

from creditworker.pdf.exceptions import PdfExtractionError


def render_page_images(pdf_bytes: bytes, *, dpi: int = 150, max_pages: int = 5) -> list[bytes]:
    """Render the first ``max_pages`` pages of a PDF to PNG images.

    OCR services that only accept images get one PNG per page.
    """
    try:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            matrix = pymupdf.Matrix(dpi / 72, dpi / 72)
            images = []
            for index, page in enumerate(doc):
                if index >= max_pages:
                    break
                images.append(page.get_pixmap(matrix=matrix).tobytes("png"))
            return images
    except Exception as exc:
        raise PdfExtractionError(f"PDF page rendering failed: {exc}") from exc
