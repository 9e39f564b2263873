import uuid
from pathlib import Path

from creditworker.config.settings import Settings
from creditworker.database.repositories.entity_repository import EntityRepository
from creditworker.database.repositories.extraction_ledger import ExtractionLedger
from creditworker.database.repositories.report_repository import ReportRepository
from creditworker.extraction.consolidator import Consolidator
from creditworker.extraction.exceptions import AllMethodsFailedError, DocumentTooLargeError
from creditworker.extraction.methods.factory import ExtractionMethodFactory
from creditworker.extraction.models import ConsolidationStrategy, Document
from creditworker.extraction.orchestrator import Deadline, ExtractionOrchestrator
from creditworker.extraction.scoring import ConfidenceScorer
from creditworker.extraction.thresholds import QualityThresholds
from creditworker.extraction.validator import ContentValidator
from creditworker.logging.logger import Log
from creditworker.parsing.parser import StructuredEntityParser
from creditworker.processor.exceptions import ExtractionInProgressError, ReportNotCompletedError
from creditworker.processor.failure_reasons import describe_failure
from creditworker.processor.file_loader import FileLoader
from creditworker.processor.models import ExtractionOutcome, ExtractionStatus


class Processor:
    """Runs one extraction run for a credit report.

    Pipeline: load -> extract (all methods) -> consolidate -> parse -> persist.
    A run clears the report's previous decision and entities first, so a
    failed run never leaves stale results behind.
    """

    def __init__(
        self,
        file_loader: FileLoader,
        report_repo: ReportRepository,
        ledger: ExtractionLedger,
        entity_repo: EntityRepository,
        orchestrator: ExtractionOrchestrator,
        consolidator: Consolidator,
        parser: StructuredEntityParser,
        deadline_seconds: float,
    ) -> None:
        self._file_loader = file_loader
        self._report_repo = report_repo
        self._ledger = ledger
        self._entity_repo = entity_repo
        self._orchestrator = orchestrator
        self._consolidator = consolidator
        self._parser = parser
        self._deadline_seconds = deadline_seconds

    def process(self, report_id: int) -> ExtractionOutcome:
        """Extract, consolidate and parse a report.

        Documents that are too large or yield no valid text mark the report
        failed and return a failed outcome. Any other error propagates so
        the caller can retry.
        """
        run_id = str(uuid.uuid4())
        Log.info(f"Processing credit report {report_id}", report_id=report_id, run_id=run_id)

        report = self._report_repo.find_by_id(report_id)
        self._ledger.clear_decision(report_id)
        self._entity_repo.clear(report_id)

        try:
            content = self._file_loader.load(report)
            document = Document(report_id=report.id, content=content, media_type=report.mime_type)
            attempts = self._orchestrator.extract(document, Deadline(self._deadline_seconds), run_id)
            decision = self._consolidator.consolidate(attempts)
        except (AllMethodsFailedError, DocumentTooLargeError) as exc:
            reason, suggestions = describe_failure(exc)
            self._report_repo.mark_failed(report_id, reason)
            Log.warning(f"Credit report {report_id} failed: {exc}", report_id=report_id, run_id=run_id)
            return ExtractionOutcome.failed(report_id, reason, suggestions)

        self._ledger.record_decision(report_id, run_id, decision)
        entities = self._parser.parse(decision.consolidated_text)
        self._entity_repo.replace(report_id, entities)
        self._report_repo.mark_completed(report_id, decision)

        Log.info(
            f"Credit report {report_id} completed with {decision.primary_method.value} "
            f"(confidence {decision.overall_confidence}, review {decision.requires_human_review}, "
            f"{entities.entity_count} entities)",
            report_id=report_id,
            run_id=run_id,
        )
        return ExtractionOutcome.succeeded(report_id, decision, entities)

    def reconsolidate(
        self,
        report_id: int,
        strategy: ConsolidationStrategy = ConsolidationStrategy.HIGHEST_CONFIDENCE,
    ) -> ExtractionOutcome:
        """Re-run consolidation over the latest recorded attempts without re-extracting.

        Raises:
            ReportNotFoundError: if no report with this ID exists.
            ExtractionInProgressError: if the report is queued or being extracted.
            ReportNotCompletedError: if the last extraction of the report failed.
            AllMethodsFailedError: if the latest run has no valid attempt.
        """
        report = self._report_repo.find_by_id(report_id)
        if report.extraction_status in (ExtractionStatus.PENDING, ExtractionStatus.PROCESSING):
            raise ExtractionInProgressError(
                f"Credit report {report_id} is {report.extraction_status.value}"
            )
        if report.extraction_status is not ExtractionStatus.COMPLETED:
            raise ReportNotCompletedError(
                f"Credit report {report_id} is {report.extraction_status.value}, re-run extraction first"
            )

        attempts = self._ledger.find_latest_attempts(report_id)
        decision = self._consolidator.consolidate(attempts, strategy)
        entities = self._parser.parse(decision.consolidated_text)

        run_id = str(uuid.uuid4())
        self._ledger.record_decision(report_id, run_id, decision)
        self._entity_repo.replace(report_id, entities)
        self._report_repo.update_decision(report_id, decision)
        Log.info(
            f"Credit report {report_id} re-consolidated with {strategy.value}",
            report_id=report_id,
        )
        return ExtractionOutcome.succeeded(report_id, decision, entities)


def build_processor(
    settings: Settings,
    files_root: Path | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    thresholds = QualityThresholds.from_settings(settings)
    ledger = ExtractionLedger()
    orchestrator = ExtractionOrchestrator.from_settings(
        settings,
        methods=ExtractionMethodFactory.create(settings),
        scorer=ConfidenceScorer(thresholds),
        ledger=ledger,
    )
    return Processor(
        file_loader=FileLoader(
            files_root=files_root if files_root is not None else Path(settings.files_root),
            max_document_bytes=settings.max_document_bytes,
        ),
        report_repo=ReportRepository(settings.max_job_attempts),
        ledger=ledger,
        entity_repo=EntityRepository(),
        orchestrator=orchestrator,
        consolidator=Consolidator(ContentValidator(thresholds), thresholds),
        parser=StructuredEntityParser(),
        deadline_seconds=settings.extraction_deadline_seconds,
    )
