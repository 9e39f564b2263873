import threading
from unittest.mock import MagicMock

import pytest

from creditworker.config.settings import Settings
from creditworker.extraction.exceptions import (
    DocumentTooLargeError,
    MethodFailedError,
    MethodTimeoutError,
)
from creditworker.extraction.methods.base import BaseExtractionMethod
from creditworker.extraction.models import Document, ExtractionMethodName, MethodOutput
from creditworker.extraction.orchestrator import Deadline, ExtractionOrchestrator
from creditworker.extraction.scoring import ConfidenceScorer

CREDIT_TEXT = "Chase Bank Account Number ****1234 Balance $1,250.00 Payment History OK"


class FakeMethod(BaseExtractionMethod):
    """Extraction method whose calls follow a scripted list of outcomes."""

    def __init__(
        self,
        name: ExtractionMethodName,
        outcomes: list[MethodOutput | Exception],
        network_bound: bool = True,
    ) -> None:
        self.name = name  # type: ignore[misc]
        self.network_bound = network_bound  # type: ignore[misc]
        self._outcomes = list(outcomes)
        self.timeouts: list[float] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "FakeMethod":
        raise NotImplementedError

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        self.timeouts.append(timeout)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def calls(self) -> int:
        return len(self.timeouts)


class SlowMethod(FakeMethod):
    """Blocks until released, to simulate a method that outlives the deadline."""

    def __init__(self, name: ExtractionMethodName, release: threading.Event) -> None:
        super().__init__(name, [])
        self._release = release

    def extract(self, document: Document, timeout: float) -> MethodOutput:
        self._release.wait(5)
        return MethodOutput(text=CREDIT_TEXT)


def _make_orchestrator(
    methods: list[BaseExtractionMethod],
    **kwargs: object,
) -> tuple[ExtractionOrchestrator, MagicMock, list[float]]:
    ledger = MagicMock()
    sleeps: list[float] = []
    options: dict = {
        "method_timeout_seconds": 5.0,
        "method_max_attempts": 3,
        "backoff_base_seconds": 1.0,
        "sleep": sleeps.append,
    }
    options.update(kwargs)
    orchestrator = ExtractionOrchestrator(methods, ConfidenceScorer(), ledger, **options)
    return orchestrator, ledger, sleeps


def _document(content: bytes = b"%PDF-fake") -> Document:
    return Document(report_id=1, content=content)


def _by_method(attempts: list) -> dict:
    return {attempt.method: attempt for attempt in attempts}


class TestDeadline:
    def test_remaining_counts_down(self) -> None:
        now = [100.0]
        deadline = Deadline(10, clock=lambda: now[0])
        now[0] = 104.0
        assert deadline.remaining() == 6.0
        assert not deadline.expired()

    def test_expired_never_goes_negative(self) -> None:
        now = [100.0]
        deadline = Deadline(10, clock=lambda: now[0])
        now[0] = 120.0
        assert deadline.remaining() == 0.0
        assert deadline.expired()


class TestExtract:
    def test_runs_every_method_and_scores_output(self) -> None:
        vision = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        textract = FakeMethod(
            ExtractionMethodName.TEXTRACT,
            [MethodOutput(text=CREDIT_TEXT, has_structured_data=True, metadata={"tables": 2})],
        )
        orchestrator, _ledger, _sleeps = _make_orchestrator([vision, textract])

        attempts = _by_method(orchestrator.extract(_document(), Deadline(30), "run-1"))

        assert set(attempts) == {ExtractionMethodName.GOOGLE_VISION, ExtractionMethodName.TEXTRACT}
        assert attempts[ExtractionMethodName.GOOGLE_VISION].confidence > 0
        assert attempts[ExtractionMethodName.TEXTRACT].has_structured_data
        assert attempts[ExtractionMethodName.TEXTRACT].metadata == {"tables": 2}

    def test_every_attempt_is_recorded_in_ledger(self) -> None:
        ok = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        bad = FakeMethod(
            ExtractionMethodName.TEXTRACT,
            [MethodFailedError("bad credentials", retryable=False)],
        )
        orchestrator, ledger, _sleeps = _make_orchestrator([ok, bad])

        attempts = orchestrator.extract(_document(), Deadline(30), "run-1")

        assert ledger.record_attempt.call_count == 2
        recorded = [call.args for call in ledger.record_attempt.call_args_list]
        assert all(args[0] == 1 and args[1] == "run-1" for args in recorded)
        assert [args[2] for args in recorded] == attempts

    def test_failing_method_does_not_affect_others(self) -> None:
        ok = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        broken = FakeMethod(ExtractionMethodName.GOOGLE_DOCUMENT_AI, [ValueError("boom")])
        orchestrator, _ledger, _sleeps = _make_orchestrator([ok, broken])

        attempts = _by_method(orchestrator.extract(_document(), Deadline(30), "run-1"))

        assert attempts[ExtractionMethodName.GOOGLE_VISION].succeeded
        assert attempts[ExtractionMethodName.GOOGLE_DOCUMENT_AI].error == "ValueError: boom"
        assert attempts[ExtractionMethodName.GOOGLE_DOCUMENT_AI].confidence == 0.0

    def test_oversized_document_is_rejected_before_any_method(self) -> None:
        method = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        orchestrator, ledger, _sleeps = _make_orchestrator([method], max_document_bytes=4)

        with pytest.raises(DocumentTooLargeError):
            orchestrator.extract(_document(b"12345"), Deadline(30), "run-1")

        assert method.calls == 0
        ledger.record_attempt.assert_not_called()

    def test_no_methods_falls_back_to_local_extraction(self, credit_report_pdf_bytes: bytes) -> None:
        orchestrator, _ledger, _sleeps = _make_orchestrator([])

        attempts = orchestrator.extract(_document(credit_report_pdf_bytes), Deadline(30), "run-1")

        assert [attempt.method for attempt in attempts] == [ExtractionMethodName.FALLBACK]
        assert attempts[0].succeeded
        assert "Chase Bank" in attempts[0].text


class TestDeadlineHandling:
    def test_slow_method_becomes_timeout_attempt(self) -> None:
        release = threading.Event()
        slow = SlowMethod(ExtractionMethodName.TEXTRACT, release)
        fast = FakeMethod(ExtractionMethodName.FALLBACK, [MethodOutput(text=CREDIT_TEXT)], network_bound=False)
        orchestrator, ledger, _sleeps = _make_orchestrator([slow, fast])

        try:
            attempts = _by_method(orchestrator.extract(_document(), Deadline(0.3), "run-1"))
        finally:
            release.set()

        assert attempts[ExtractionMethodName.FALLBACK].succeeded
        timed_out = attempts[ExtractionMethodName.TEXTRACT]
        assert not timed_out.succeeded
        assert timed_out.error.startswith("MethodTimeoutError")
        assert ledger.record_attempt.call_count == 2

    def test_method_timeout_is_bounded_by_deadline(self) -> None:
        method = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        orchestrator, _ledger, _sleeps = _make_orchestrator([method], method_timeout_seconds=30.0)

        orchestrator.extract(_document(), Deadline(2), "run-1")

        assert 0 < method.timeouts[0] <= 2


class TestRetries:
    def test_retryable_failures_back_off_exponentially(self) -> None:
        method = FakeMethod(
            ExtractionMethodName.GOOGLE_VISION,
            [
                MethodFailedError("rate limited"),
                MethodTimeoutError(),
                MethodOutput(text=CREDIT_TEXT),
            ],
        )
        orchestrator, _ledger, sleeps = _make_orchestrator([method])

        attempts = orchestrator.extract(_document(), Deadline(100), "run-1")

        assert attempts[0].succeeded
        assert method.calls == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self) -> None:
        method = FakeMethod(
            ExtractionMethodName.GOOGLE_VISION,
            [MethodFailedError("server error (503)")] * 3,
        )
        orchestrator, _ledger, sleeps = _make_orchestrator([method])

        attempts = orchestrator.extract(_document(), Deadline(100), "run-1")

        assert method.calls == 3
        assert sleeps == [1.0, 2.0]
        assert attempts[0].error == "MethodFailedError: server error (503)"

    def test_non_retryable_failure_is_not_retried(self) -> None:
        method = FakeMethod(
            ExtractionMethodName.GOOGLE_VISION,
            [MethodFailedError("authentication failed (401)", retryable=False)],
        )
        orchestrator, _ledger, sleeps = _make_orchestrator([method])

        orchestrator.extract(_document(), Deadline(100), "run-1")

        assert method.calls == 1
        assert sleeps == []

    def test_local_method_is_not_retried(self) -> None:
        method = FakeMethod(
            ExtractionMethodName.FALLBACK,
            [MethodFailedError("transient"), MethodOutput(text=CREDIT_TEXT)],
            network_bound=False,
        )
        orchestrator, _ledger, _sleeps = _make_orchestrator([method])

        attempts = orchestrator.extract(_document(), Deadline(100), "run-1")

        assert method.calls == 1
        assert not attempts[0].succeeded

    def test_no_retry_when_deadline_too_close(self) -> None:
        method = FakeMethod(
            ExtractionMethodName.GOOGLE_VISION,
            [MethodFailedError("rate limited"), MethodOutput(text=CREDIT_TEXT)],
        )
        orchestrator, _ledger, sleeps = _make_orchestrator([method], method_timeout_seconds=5.0)

        attempts = orchestrator.extract(_document(), Deadline(3), "run-1")

        assert method.calls == 1
        assert sleeps == []
        assert not attempts[0].succeeded


class TestFromSettings:
    def test_reads_limits_from_settings(self) -> None:
        settings = Settings(max_document_bytes=4, method_max_attempts=1)
        method = FakeMethod(ExtractionMethodName.GOOGLE_VISION, [MethodOutput(text=CREDIT_TEXT)])
        orchestrator = ExtractionOrchestrator.from_settings(
            settings, [method], ConfidenceScorer(), MagicMock()
        )

        with pytest.raises(DocumentTooLargeError):
            orchestrator.extract(_document(b"12345"), Deadline(30), "run-1")
