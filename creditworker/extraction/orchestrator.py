import time
from collections.abc import Callable
from concurrent import futures

from creditworker.config.settings import Settings
from creditworker.database.repositories.extraction_ledger import ExtractionLedger
from creditworker.extraction.exceptions import (
    DocumentTooLargeError,
    MethodFailedError,
    MethodTimeoutError,
)
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.methods.fallback import LocalFallbackMethod
from creditworker.extraction.models import Document, ExtractionAttempt, MethodOutput
from creditworker.extraction.scoring import ConfidenceScorer
from creditworker.logging.logger import Log


class Deadline:
    """Wall-clock budget for one extraction run."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ExtractionOrchestrator:
    """Runs every enabled extraction method concurrently against one document.

    A failing method never affects the others: every outcome, including
    errors and timeouts, becomes an ExtractionAttempt that is written to the
    ledger as soon as it is known.
    """

    def __init__(
        self,
        methods: list[BaseExtractionMethod],
        scorer: ConfidenceScorer,
        ledger: ExtractionLedger,
        *,
        max_document_bytes: int = 10 * 1024 * 1024,
        method_timeout_seconds: float = 30.0,
        method_max_attempts: int = 3,
        backoff_base_seconds: float = 1.0,
        max_workers: int = 4,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._methods = list(methods) or [LocalFallbackMethod()]
        self._scorer = scorer
        self._ledger = ledger
        self._max_document_bytes = max_document_bytes
        self._method_timeout = method_timeout_seconds
        self._max_attempts = method_max_attempts
        self._backoff_base = backoff_base_seconds
        self._max_workers = max_workers
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        methods: list[BaseExtractionMethod],
        scorer: ConfidenceScorer,
        ledger: ExtractionLedger,
    ) -> "ExtractionOrchestrator":
        return cls(
            methods,
            scorer,
            ledger,
            max_document_bytes=settings.max_document_bytes,
            method_timeout_seconds=settings.method_timeout_seconds,
            method_max_attempts=settings.method_max_attempts,
            backoff_base_seconds=settings.method_backoff_base_seconds,
            max_workers=settings.max_concurrent_methods,
        )

    def extract(self, document: Document, deadline: Deadline, run_id: str) -> list[ExtractionAttempt]:
        if document.size_bytes > self._max_document_bytes:
            raise DocumentTooLargeError(document.size_bytes, self._max_document_bytes)

        Log.info(
            f"Extracting with {len(self._methods)} method(s): "
            + ", ".join(method.name.value for method in self._methods),
            report_id=document.report_id,
            run_id=run_id,
        )
        started = time.monotonic()
        attempts: list[ExtractionAttempt] = []
        executor = futures.ThreadPoolExecutor(
            max_workers=max(1, min(self._max_workers, len(self._methods))),
            thread_name_prefix="extract",
        )
        pending = {
            executor.submit(self._run_method, method, document, deadline): method
            for method in self._methods
        }
        try:
            for future in futures.as_completed(list(pending), timeout=deadline.remaining()):
                pending.pop(future)
                attempts.append(self._record(document, run_id, future.result()))
        except futures.TimeoutError:
            for method in pending.values():
                Log.warning(
                    f"{method.name.value} still running at the deadline",
                    report_id=document.report_id,
                    method=method.name.value,
                )
                attempt = ExtractionAttempt.failed(
                    method.name,
                    MethodTimeoutError("extraction deadline exceeded"),
                    _elapsed_ms(started),
                )
                attempts.append(self._record(document, run_id, attempt))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return attempts

    def _record(self, document: Document, run_id: str, attempt: ExtractionAttempt) -> ExtractionAttempt:
        self._ledger.record_attempt(document.report_id, run_id, attempt)
        return attempt

    def _run_method(
        self,
        method: BaseExtractionMethod,
        document: Document,
        deadline: Deadline,
    ) -> ExtractionAttempt:
        started = time.monotonic()
        try:
            output = self._call_with_retry(method, document, deadline)
        except MethodFailedError as exc:
            Log.warning(
                f"{method.name.value} failed: {exc}",
                report_id=document.report_id,
                method=method.name.value,
            )
            return ExtractionAttempt.failed(method.name, exc, _elapsed_ms(started))
        except Exception as exc:
            Log.exception(
                f"{method.name.value} raised an unexpected error",
                report_id=document.report_id,
                method=method.name.value,
            )
            return ExtractionAttempt.failed(method.name, exc, _elapsed_ms(started))

        attempt = ExtractionAttempt(
            method=method.name,
            text=output.text,
            confidence=self._scorer.score(output.text, method.name),
            elapsed_ms=_elapsed_ms(started),
            has_structured_data=output.has_structured_data,
            metadata=output.metadata,
        )
        Log.info(
            f"{method.name.value} extracted {attempt.character_count} chars "
            f"in {attempt.elapsed_ms} ms (confidence {attempt.confidence})",
            report_id=document.report_id,
            method=method.name.value,
        )
        return attempt

    def _call_with_retry(
        self,
        method: BaseExtractionMethod,
        document: Document,
        deadline: Deadline,
    ) -> MethodOutput:
        max_attempts = self._max_attempts if method.network_bound else 1
        for attempt_number in range(1, max_attempts + 1):
            timeout = min(self._method_timeout, deadline.remaining())
            if timeout <= 0:
                raise MethodTimeoutError("extraction deadline exceeded")
            try:
                return method.extract(document, timeout)
            except MethodFailedError as exc:
                if not exc.retryable or attempt_number == max_attempts:
                    raise
                delay = self._backoff_base * 2 ** (attempt_number - 1)
                if delay + self._method_timeout > deadline.remaining():
                    Log.warning(
                        f"{method.name.value} not retried, deadline too close: {exc}",
                        report_id=document.report_id,
                        method=method.name.value,
                        attempt=attempt_number,
                    )
                    raise
                Log.warning(
                    f"{method.name.value} attempt {attempt_number} failed, "
                    f"retrying in {delay:.1f}s: {exc}",
                    report_id=document.report_id,
                    method=method.name.value,
                    attempt=attempt_number,
                )
                self._sleep(delay)
        raise MethodFailedError(f"{method.name.value} made no attempts", retryable=False)
