from creditworker.config.settings import Settings
from creditworker.database.models import ReportJob
from creditworker.database.repositories.report_repository import ReportRepository
from creditworker.logging.logger import Log
from creditworker.processor.failure_reasons import describe_error
from creditworker.processor.processor import Processor


class ReportRunner:
    """Run one claimed report, catch exceptions, and apply retry logic.

    Extraction failures the processor reports as a failed outcome are
    already final. Anything raised is treated as transient and retried
    until max_job_attempts.
    """

    def __init__(
        self,
        processor: Processor,
        report_repo: ReportRepository,
        settings: Settings,
    ) -> None:
        self._processor = processor
        self._report_repo = report_repo
        self._settings = settings

    def run(self, job: ReportJob) -> None:
        """Execute a single report with error handling."""
        Log.info(f"Running report {job.id} (attempt {job.attempts + 1})", report_id=job.id)
        try:
            outcome = self._processor.process(job.id)
        except Exception as exc:
            self._handle_failure(job, exc)
            return

        if outcome.success:
            Log.info(f"Report {job.id} completed successfully", report_id=job.id)
        else:
            Log.warning(f"Report {job.id} failed: {outcome.reason}", report_id=job.id)

    def _handle_failure(self, job: ReportJob, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending.

        Only a reason category is stored on the report. The exception itself
        is logged with its traceback.
        """
        Log.exception(f"Report {job.id} raised: {exc}", report_id=job.id)
        reason = describe_error(exc)
        if job.attempts + 1 >= self._settings.max_job_attempts:
            self._report_repo.mark_failed(job.id, reason)
            Log.error(
                f"Report {job.id} permanently failed after {job.attempts + 1} attempts",
                report_id=job.id,
            )
        else:
            self._report_repo.increment_attempts(job.id, reason)
            Log.warning(
                f"Report {job.id} will be retried (attempt {job.attempts + 1})",
                report_id=job.id,
            )
