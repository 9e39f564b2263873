class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class ReportNotFoundError(ProcessorError):
    """Raised when a credit report cannot be found in the database."""


class FileReadError(ProcessorError):
    """Raised when a report file cannot be read from disk."""


class ExtractionInProgressError(ProcessorError):
    """Raised when a report is being extracted and cannot be changed."""


class ReportNotCompletedError(ProcessorError):
    """Raised when a report has no completed extraction to work from."""
