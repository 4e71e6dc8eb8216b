"""
Batch runner for CrateDocs.

Processes packages one after another and writes the failure report once the
whole batch has been processed.
"""

import logging
import os
from typing import Awaitable, Callable, Iterable, List, Optional

from cratedocs.config import AppConfig
from cratedocs.orchestrator import BuildOrchestrator
from cratedocs.schemas import (
    BatchSummary,
    FailureRecord,
    PackageOutcome,
    PackageOutcomeStatus,
    PackageVersion,
)

logger = logging.getLogger("cratedocs.batch")

ProgressCallback = Callable[[int, int, PackageOutcome], Awaitable[None]]


def format_failure_record(record: FailureRecord) -> str:
    """Render a failure as a header line plus the indented error text."""
    package = record.package
    error_lines = record.error.splitlines() or [""]
    body = "\n".join(f"    {line}" for line in error_lines)
    return f"{package.name} {package.version} {package.repository}\n{body}\n\n"


def write_failure_report(failures: List[FailureRecord], path: str) -> None:
    """Append all failure records to ``path`` in one write.

    Raises:
        OSError: If the report cannot be written; this aborts the batch
    """
    if not failures:
        logger.info("No failures to report")
        return

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write("".join(format_failure_record(record) for record in failures))
    logger.info(f"Wrote {len(failures)} failure records to {path}")


class BatchRunner:
    """Run the orchestrator over a list of packages, sequentially."""

    def __init__(
        self,
        config: AppConfig,
        orchestrator: Optional[BuildOrchestrator] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.orchestrator = orchestrator or BuildOrchestrator(config)
        self.progress_callback = progress_callback

    async def run(self, packages: Iterable[PackageVersion]) -> BatchSummary:
        """Process every package and flush the failure report at the end.

        Args:
            packages: Packages in the order they should be processed

        Returns:
            BatchSummary: Built packages, packages without a tag, and failures
        """
        package_list = list(packages)
        summary = BatchSummary()

        for index, package in enumerate(package_list, start=1):
            outcome = await self.orchestrator.process(package)

            if outcome.status == PackageOutcomeStatus.BUILT:
                summary.built.append(outcome)
            elif outcome.status == PackageOutcomeStatus.NO_TAG:
                summary.no_tag.append(outcome)
            else:
                summary.failures.append(
                    FailureRecord(package=package, error=outcome.error or "Unknown error")
                )

            if self.progress_callback:
                await self.progress_callback(index, len(package_list), outcome)

        logger.info(
            f"Batch finished: {len(summary.built)} built, {len(summary.no_tag)} without tag, "
            f"{len(summary.failures)} failed"
        )
        write_failure_report(summary.failures, self.config.failure_report_path)
        return summary
