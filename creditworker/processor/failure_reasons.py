from creditworker.extraction.exceptions import AllMethodsFailedError, DocumentTooLargeError, ExtractionError
from creditworker.processor.exceptions import FileReadError

TOO_LARGE_REASON = "file is too large"
NO_TEXT_REASON = "no valid OCR text found - try a different file"
METADATA_ONLY_REASON = "no valid OCR text found - the PDF only contains page metadata"
UNREADABLE_FILE_REASON = "uploaded file could not be read - please upload it again"
PROCESSING_ERROR_REASON = "processing error - please retry"

TOO_LARGE_SUGGESTIONS = [
    "Upload a PDF smaller than 10 MB.",
    "Remove attachments or extra pages that are not part of the credit report.",
]
NO_TEXT_SUGGESTIONS = [
    "Make sure the file is a credit report from Experian, Equifax or TransUnion.",
    "Upload a clearer scan, or the original PDF instead of a photo.",
]
METADATA_ONLY_SUGGESTIONS = [
    "Download the PDF directly from the bureau website instead of using Print to PDF.",
    "If you saved the report from a browser, try a different browser or save as PDF from the bureau's download button.",
    "Upload a screenshot or scan of the report pages instead.",
]


def describe_failure(exc: ExtractionError) -> tuple[str, list[str]]:
    """Human-readable reason and suggested next steps for a failed extraction."""
    if isinstance(exc, DocumentTooLargeError):
        return TOO_LARGE_REASON, list(TOO_LARGE_SUGGESTIONS)
    if isinstance(exc, AllMethodsFailedError) and exc.metadata_only:
        return METADATA_ONLY_REASON, list(METADATA_ONLY_SUGGESTIONS)
    return NO_TEXT_REASON, list(NO_TEXT_SUGGESTIONS)


def describe_error(exc: Exception) -> str:
    """User-facing reason for an unexpected error. Details stay in the logs."""
    if isinstance(exc, FileReadError):
        return UNREADABLE_FILE_REASON
    return PROCESSING_ERROR_REASON
