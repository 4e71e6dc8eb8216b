"""
rustdoc JSON builder for CrateDocs.

Wraps ``cargo rustdoc`` so that one call corresponds to one build attempt with
a given set of options.
"""

import logging
import os
from typing import List, Optional

from cratedocs.process import ProcessRunner
from cratedocs.schemas import BuildAttemptResult, BuildOptions, FeatureSet, TargetRestriction

logger = logging.getLogger("cratedocs.builder.rustdoc")

RUSTDOC_ARGS = [
    "--document-private-items",
    "-Zunstable-options",
    "--output-format",
    "json",
]


def artifact_file_name(package_name: str) -> str:
    """rustdoc names its output after the crate, with hyphens turned into underscores."""
    return f"{package_name.replace('-', '_')}.json"


def artifact_path(local_path: str, package_name: str) -> str:
    return os.path.join(local_path, "target", "doc", artifact_file_name(package_name))


class RustdocBuilder:
    """Builder for rustdoc JSON output."""

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        toolchain: str = "nightly",
        timeout: Optional[float] = None,
    ):
        """Initialize the builder.

        Args:
            runner: Process runner used to invoke cargo
            toolchain: rustup toolchain; JSON output needs nightly
            timeout: Seconds before an attempt is abandoned
        """
        self.runner = runner or ProcessRunner()
        self.toolchain = toolchain
        self.timeout = timeout

    def command_args(self, options: BuildOptions) -> List[str]:
        """Arguments passed to ``cargo`` for ``options``."""
        args = [f"+{self.toolchain}", "rustdoc"]
        if options.package:
            args += ["-p", options.package]
        if options.features == FeatureSet.ALL:
            args.append("--all-features")
        if options.target == TargetRestriction.LIBRARY:
            args.append("--lib")
        return args + ["--"] + RUSTDOC_ARGS

    def clear_stale_artifact(self, local_path: str, package_name: str) -> None:
        """Remove output left by an earlier run so it is never mistaken for a new build."""
        path = artifact_path(local_path, package_name)
        if os.path.exists(path):
            logger.debug(f"Removing stale artifact {path}")
            os.remove(path)

    async def build(
        self, local_path: str, package_name: str, options: BuildOptions
    ) -> BuildAttemptResult:
        """Run one rustdoc build.

        Args:
            local_path: Working copy to build in
            package_name: Crate whose artifact is expected
            options: Invocation options

        Returns:
            BuildAttemptResult: Success flag, cargo's diagnostic output and the
            path the artifact is expected at
        """
        args = self.command_args(options)
        expected_path = artifact_path(local_path, package_name)
        logger.info(f"Running cargo {' '.join(args)} in {local_path}")

        try:
            result = await self.runner.invoke("cargo", args, cwd=local_path, timeout=self.timeout)
        except OSError as e:
            logger.warning(f"Could not run cargo: {e}")
            return BuildAttemptResult(succeeded=False, diagnostic_text=f"Could not run cargo: {e}")

        diagnostic = "\n".join(part for part in (result.stderr, result.stdout) if part)
        if not result.succeeded:
            logger.debug(f"cargo rustdoc failed with status {result.exit_status}:\n{diagnostic}")

        return BuildAttemptResult(
            succeeded=result.succeeded,
            diagnostic_text=diagnostic,
            output_path=expected_path,
        )
