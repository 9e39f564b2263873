import json
from collections.abc import Generator
from contextlib import contextmanager

import click

from creditworker.config.settings import Settings
from creditworker.database.connection import close_pool, init_pool
from creditworker.database.repositories.extraction_ledger import SUMMARY_WINDOWS, ExtractionLedger
from creditworker.database.repositories.report_repository import ReportRepository
from creditworker.extraction.exceptions import AllMethodsFailedError
from creditworker.extraction.models import ConsolidationStrategy
from creditworker.logging.logger import Log
from creditworker.processor.exceptions import ProcessorError
from creditworker.processor.processor import build_processor
from creditworker.worker.report_runner import ReportRunner
from creditworker.worker.worker import Worker


@contextmanager
def _runtime() -> Generator[Settings, None, None]:
    """Load settings, configure logging and hold the connection pool open."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    try:
        yield settings
    finally:
        close_pool()


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Credit report extraction worker."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(worker)


@cli.command()
@click.option("--max-reports", type=int, default=None, help="Stop after this many reports.")
def worker(max_reports: int | None = None) -> None:
    """Poll for pending credit reports and process them."""
    with _runtime() as settings:
        report_repo = ReportRepository(settings.max_job_attempts)
        processor = build_processor(settings)
        report_runner = ReportRunner(processor, report_repo, settings)
        Worker(report_repo, report_runner, settings).run(max_reports=max_reports)


@cli.command()
@click.argument("report_id", type=int)
def reextract(report_id: int) -> None:
    """Queue a completed or failed report for a fresh extraction run."""
    with _runtime() as settings:
        try:
            ReportRepository(settings.max_job_attempts).request_reextraction(report_id)
        except ProcessorError as exc:
            raise click.ClickException(str(exc)) from exc
    click.echo(f"Credit report {report_id} queued for re-extraction")


@cli.command()
@click.argument("report_id", type=int)
@click.option(
    "--strategy",
    type=click.Choice([strategy.value for strategy in ConsolidationStrategy]),
    default=ConsolidationStrategy.HIGHEST_CONFIDENCE.value,
    show_default=True,
    help="How to pick the primary attempt.",
)
def reconsolidate(report_id: int, strategy: str) -> None:
    """Re-run consolidation over the latest recorded attempts of a report."""
    with _runtime() as settings:
        try:
            outcome = build_processor(settings).reconsolidate(
                report_id, ConsolidationStrategy(strategy)
            )
        except (ProcessorError, AllMethodsFailedError) as exc:
            raise click.ClickException(str(exc)) from exc
    result = outcome.to_dict()
    result.pop("consolidated_text", None)
    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.option(
    "--window",
    type=click.Choice(list(SUMMARY_WINDOWS)),
    default="week",
    show_default=True,
)
def summary(window: str) -> None:
    """Print per-method extraction statistics for a time window."""
    with _runtime():
        stats = ExtractionLedger().summary(window)
    click.echo(f"Since {stats.since:%Y-%m-%d %H:%M} ({stats.window})")
    for method in stats.methods:
        click.echo(
            f"  {method.method:<20} attempts={method.attempts} failures={method.failures} "
            f"avg_confidence={method.average_confidence}"
        )
    click.echo(
        f"  consolidations={stats.total_consolidations} "
        f"avg_confidence={stats.average_consolidation_confidence} "
        f"review={stats.review_count}"
    )


def main() -> None:
    """Entry point: run the CLI, defaulting to the worker loop."""
    cli()


if __name__ == "__main__":
    main()
