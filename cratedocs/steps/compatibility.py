"""
Compatibility check step for CrateDocs.

Runs cargo-semver-checks against the resolved tag. The result is informational
only; a failing or missing tool never stops the package from being built.
"""

from typing import Any, Dict, Union

from pydantic import BaseModel

from cratedocs.config import AppConfig
from cratedocs.exceptions import NonFatalAuxiliaryError
from cratedocs.process import ProcessRunner
from cratedocs.schemas import MessageType
from cratedocs.steps.base import BaseStep


class CompatibilityCheckStep(BaseStep):
    """Step that runs cargo-semver-checks with the resolved tag as baseline."""

    def __init__(self, config: AppConfig, runner: ProcessRunner):
        super().__init__(config)
        self.runner = runner

    def command_args(self, package_name: str, tag: str):
        return ["semver-checks", "check-release", "--package", package_name, "--baseline-rev", tag]

    async def _check(self, local_path: str, package_name: str, tag: str) -> None:
        try:
            result = await self.runner.invoke(
                "cargo",
                self.command_args(package_name, tag),
                cwd=local_path,
                timeout=self.config.build_timeout_seconds,
            )
        except OSError as e:
            raise NonFatalAuxiliaryError(f"Could not run cargo-semver-checks: {e}") from e

        if not result.succeeded:
            output = "\n".join(part for part in (result.stderr, result.stdout) if part)
            raise NonFatalAuxiliaryError(
                f"cargo-semver-checks exited with status {result.exit_status}:\n{output}"
            )

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        package = self.require_state_value(state, "package")
        handle = self.require_state_value(state, "repository")
        tag = self.require_state_value(state, "tag")

        try:
            await self._check(handle.local_path, package.name, tag)
        except NonFatalAuxiliaryError as e:
            self.logger.warning(f"Compatibility check failed for {package}: {e}")
            return {
                "compatibility_ok": False,
                "messages": [self._message(MessageType.WARNING, f"Compatibility check failed: {e}")],
            }

        return {
            "compatibility_ok": True,
            "messages": [self._message(MessageType.INFO, "Compatibility check passed")],
        }
