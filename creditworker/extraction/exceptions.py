from creditworker.extraction.models import DetectedType, ExtractionMethodName, ValidationResult


class ExtractionError(Exception):
    """Base exception for text extraction and consolidation failures."""


class DocumentTooLargeError(ExtractionError):
    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"Document is {size_bytes} bytes, limit is {max_bytes} bytes"
        )


class MethodUnavailableError(ExtractionError):
    """Raised when a method cannot be built, usually for missing credentials."""

    def __init__(self, method: ExtractionMethodName, reason: str) -> None:
        self.method = method
        super().__init__(f"{method.value} unavailable: {reason}")


class MethodFailedError(ExtractionError):
    """Raised by a method adapter when a single call fails.

    ``retryable`` tells the orchestrator whether another attempt may succeed
    (network errors, rate limiting, server errors) or not (authentication,
    malformed responses, unreadable documents).
    """

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(message)


class MethodTimeoutError(MethodFailedError):
    def __init__(self, message: str = "method timed out") -> None:
        super().__init__(message, retryable=True)


class ContentInvalidError(ExtractionError):
    def __init__(self, method: ExtractionMethodName, result: ValidationResult) -> None:
        self.method = method
        self.result = result
        super().__init__(f"{method.value}: {result.reason}")


class AllMethodsFailedError(ExtractionError):
    """Raised when no attempt produced valid text. Carries the per-method causes."""

    def __init__(self, causes: list[ExtractionError] | None = None) -> None:
        self.causes = causes or []
        super().__init__("all extraction methods failed")

    @property
    def metadata_only(self) -> bool:
        """True when at least one method only recovered PDF container syntax."""
        return any(
            isinstance(cause, ContentInvalidError)
            and cause.result.detected_type is DetectedType.METADATA
            for cause in self.causes
        )
