import time

from creditworker.config.settings import Settings
from creditworker.database.connection import get_connection
from creditworker.database.models import ReportJob
from creditworker.database.repositories.report_repository import ReportRepository
from creditworker.logging.logger import Log
from creditworker.worker.report_runner import ReportRunner


class Worker:
    """Poll loop: sleep -> claim pending report -> dispatch."""

    def __init__(
        self,
        report_repo: ReportRepository,
        report_runner: ReportRunner,
        settings: Settings,
    ) -> None:
        self._report_repo = report_repo
        self._report_runner = report_runner
        self._settings = settings

    def run(self, max_reports: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_reports is set, stop after processing that many reports (for testing).
        """
        Log.info("Worker started, polling for pending credit reports")
        reports_done = 0
        try:
            while max_reports is None or reports_done < max_reports:
                job = self._try_claim_report()
                if job is None:
                    Log.debug("No pending reports, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
                    continue
                self._report_runner.run(job)
                reports_done += 1
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_report(self) -> ReportJob | None:
        """Attempt to claim the next pending report. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._report_repo.claim_next_report(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
