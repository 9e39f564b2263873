from unittest.mock import MagicMock, patch

import pytest

from creditworker.database.repositories.entity_repository import EntityRepository
from creditworker.database.repositories.extraction_ledger import ExtractionLedger
from creditworker.database.repositories.report_repository import ReportRepository
from creditworker.extraction.consolidator import Consolidator
from creditworker.extraction.exceptions import (
    AllMethodsFailedError,
    ContentInvalidError,
    DocumentTooLargeError,
)
from creditworker.extraction.models import (
    ConsolidationDecision,
    ConsolidationStrategy,
    DetectedType,
    ExtractionAttempt,
    ExtractionMethodName,
    ValidationResult,
)
from creditworker.extraction.orchestrator import ExtractionOrchestrator
from creditworker.parsing.models import CreditAccount, ParsedReport, PersonalInfo
from creditworker.parsing.parser import StructuredEntityParser
from creditworker.processor.exceptions import (
    ExtractionInProgressError,
    FileReadError,
    ReportNotCompletedError,
)
from creditworker.processor.failure_reasons import METADATA_ONLY_REASON, TOO_LARGE_REASON
from creditworker.processor.file_loader import FileLoader
from creditworker.processor.models import CreditReport, ExtractionStatus
from creditworker.processor.processor import Processor

TEXT = "Chase Bank Account ****1234 Balance $1,250.00 Status Open"


def _make_report(status: ExtractionStatus = ExtractionStatus.PROCESSING) -> CreditReport:
    return CreditReport(
        id=1,
        user_id=10,
        file_path="10/report.pdf",
        mime_type="application/pdf",
        extraction_status=status,
    )


def _make_attempt() -> ExtractionAttempt:
    return ExtractionAttempt(
        method=ExtractionMethodName.GOOGLE_VISION,
        text=TEXT,
        confidence=0.8,
        elapsed_ms=120,
    )


def _make_decision() -> ConsolidationDecision:
    return ConsolidationDecision(
        primary_method=ExtractionMethodName.GOOGLE_VISION,
        consolidated_text=TEXT,
        overall_confidence=0.8,
        methods_considered=(ExtractionMethodName.GOOGLE_VISION,),
        conflict_count=0,
        requires_human_review=False,
        strategy=ConsolidationStrategy.HIGHEST_CONFIDENCE,
    )


def _make_pipeline() -> tuple[Processor, dict[str, MagicMock]]:
    mocks = {
        "file_loader": MagicMock(spec=FileLoader),
        "report_repo": MagicMock(spec=ReportRepository),
        "ledger": MagicMock(spec=ExtractionLedger),
        "entity_repo": MagicMock(spec=EntityRepository),
        "orchestrator": MagicMock(spec=ExtractionOrchestrator),
        "consolidator": MagicMock(spec=Consolidator),
        "parser": MagicMock(spec=StructuredEntityParser),
    }
    mocks["report_repo"].find_by_id.return_value = _make_report()
    mocks["file_loader"].load.return_value = b"%PDF-fake"
    mocks["orchestrator"].extract.return_value = [_make_attempt()]
    mocks["consolidator"].consolidate.return_value = _make_decision()
    mocks["parser"].parse.return_value = ParsedReport()

    processor = Processor(deadline_seconds=60.0, **mocks)
    return processor, mocks


class TestProcessSuccess:
    def test_returns_succeeded_outcome(self) -> None:
        processor, _mocks = _make_pipeline()

        outcome = processor.process(1)

        assert outcome.success
        assert outcome.decision == _make_decision()
        assert outcome.entities == ParsedReport()

    def test_clears_previous_results_before_extracting(self) -> None:
        processor, mocks = _make_pipeline()
        calls = MagicMock()
        calls.attach_mock(mocks["ledger"].clear_decision, "clear_decision")
        calls.attach_mock(mocks["entity_repo"].clear, "clear_entities")
        calls.attach_mock(mocks["orchestrator"].extract, "extract")

        processor.process(1)

        names = [call[0] for call in calls.mock_calls]
        assert names.index("clear_decision") < names.index("extract")
        assert names.index("clear_entities") < names.index("extract")

    def test_builds_document_from_report(self) -> None:
        processor, mocks = _make_pipeline()

        processor.process(1)

        document, _deadline, run_id = mocks["orchestrator"].extract.call_args.args
        assert document.report_id == 1
        assert document.content == b"%PDF-fake"
        assert document.media_type == "application/pdf"
        assert len(run_id) == 36

    def test_persists_decision_entities_and_status(self) -> None:
        processor, mocks = _make_pipeline()

        processor.process(1)

        run_id = mocks["orchestrator"].extract.call_args.args[2]
        mocks["ledger"].record_decision.assert_called_once_with(1, run_id, _make_decision())
        mocks["parser"].parse.assert_called_once_with(TEXT)
        mocks["entity_repo"].replace.assert_called_once_with(1, ParsedReport())
        mocks["report_repo"].mark_completed.assert_called_once_with(1, _make_decision())
        mocks["report_repo"].mark_failed.assert_not_called()

    @patch("creditworker.processor.processor.Log")
    def test_completion_log_reports_entity_count(self, mock_log: MagicMock) -> None:
        processor, mocks = _make_pipeline()
        mocks["parser"].parse.return_value = ParsedReport(
            personal_info=PersonalInfo(full_name="John Smith"),
            accounts=[CreditAccount(creditor_name="Chase Bank")],
        )

        processor.process(1)

        message = mock_log.info.call_args.args[0]
        assert "completed with google-vision" in message
        assert "2 entities" in message


class TestProcessFailure:
    def test_all_methods_failed_marks_report_failed(self) -> None:
        processor, mocks = _make_pipeline()
        invalid = ContentInvalidError(
            ExtractionMethodName.FALLBACK,
            ValidationResult(
                is_valid=False,
                detected_type=DetectedType.METADATA,
                reason="metadata only, no content",
                rule=2,
            ),
        )
        mocks["consolidator"].consolidate.side_effect = AllMethodsFailedError([invalid])

        outcome = processor.process(1)

        assert not outcome.success
        assert outcome.reason == METADATA_ONLY_REASON
        assert outcome.suggestions
        mocks["report_repo"].mark_failed.assert_called_once_with(1, METADATA_ONLY_REASON)
        mocks["ledger"].record_decision.assert_not_called()
        mocks["entity_repo"].replace.assert_not_called()
        mocks["report_repo"].mark_completed.assert_not_called()

    def test_too_large_document_marks_report_failed(self) -> None:
        processor, mocks = _make_pipeline()
        mocks["file_loader"].load.side_effect = DocumentTooLargeError(20, 10)

        outcome = processor.process(1)

        assert outcome.reason == TOO_LARGE_REASON
        mocks["orchestrator"].extract.assert_not_called()
        mocks["report_repo"].mark_failed.assert_called_once_with(1, TOO_LARGE_REASON)

    def test_unexpected_errors_propagate(self) -> None:
        processor, mocks = _make_pipeline()
        mocks["file_loader"].load.side_effect = FileReadError("File not found: /x")

        with pytest.raises(FileReadError):
            processor.process(1)

        mocks["report_repo"].mark_failed.assert_not_called()


class TestReconsolidate:
    def test_reuses_latest_attempts(self) -> None:
        processor, mocks = _make_pipeline()
        mocks["report_repo"].find_by_id.return_value = _make_report(ExtractionStatus.COMPLETED)
        attempts = [_make_attempt()]
        mocks["ledger"].find_latest_attempts.return_value = attempts

        outcome = processor.reconsolidate(1, ConsolidationStrategy.MANUAL_REVIEW)

        assert outcome.success
        mocks["consolidator"].consolidate.assert_called_once_with(
            attempts, ConsolidationStrategy.MANUAL_REVIEW
        )
        mocks["orchestrator"].extract.assert_not_called()
        mocks["file_loader"].load.assert_not_called()
        mocks["report_repo"].update_decision.assert_called_once_with(1, _make_decision())
        mocks["entity_repo"].replace.assert_called_once_with(1, ParsedReport())

    @pytest.mark.parametrize("status", [ExtractionStatus.PENDING, ExtractionStatus.PROCESSING])
    def test_rejects_report_in_progress(self, status: ExtractionStatus) -> None:
        processor, mocks = _make_pipeline()
        mocks["report_repo"].find_by_id.return_value = _make_report(status)

        with pytest.raises(ExtractionInProgressError):
            processor.reconsolidate(1)

        mocks["ledger"].find_latest_attempts.assert_not_called()

    def test_rejects_failed_report(self) -> None:
        processor, mocks = _make_pipeline()
        mocks["report_repo"].find_by_id.return_value = _make_report(ExtractionStatus.FAILED)

        with pytest.raises(ReportNotCompletedError, match="failed"):
            processor.reconsolidate(1)

        mocks["ledger"].find_latest_attempts.assert_not_called()
        mocks["ledger"].record_decision.assert_not_called()
        mocks["entity_repo"].replace.assert_not_called()

    def test_completed_report_without_valid_attempts_raises(self) -> None:
        processor, mocks = _make_pipeline()
        mocks["report_repo"].find_by_id.return_value = _make_report(ExtractionStatus.COMPLETED)
        mocks["ledger"].find_latest_attempts.return_value = []
        mocks["consolidator"].consolidate.side_effect = AllMethodsFailedError()

        with pytest.raises(AllMethodsFailedError):
            processor.reconsolidate(1)

        mocks["ledger"].record_decision.assert_not_called()
