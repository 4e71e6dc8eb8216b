"""
Documentation build steps for CrateDocs.

The build step runs the default rustdoc invocation and, when it fails, walks
the fallback state machine until a build succeeds or the chain is exhausted.
The relocation step moves the resulting JSON into the output directory.
"""

import os
import shutil
from typing import Any, Dict, List, Union

from pydantic import BaseModel

from cratedocs.builder import BuildState, RustdocBuilder, next_state, options_for, strategy_for
from cratedocs.config import AppConfig
from cratedocs.exceptions import BuildExhaustionError, InfrastructureError
from cratedocs.schemas import BuildAttemptResult, MessageType, PackageVersion
from cratedocs.steps.base import BaseStep


def artifact_destination(output_dir: str, package: PackageVersion) -> str:
    """Canonical output path for a package version's rustdoc JSON."""
    return os.path.join(output_dir, f"{package.normalized_name}-{package.version}.json")


class DocumentationBuildStep(BaseStep):
    """Step that builds rustdoc JSON, retrying with fallback strategies."""

    def __init__(self, config: AppConfig, builder: RustdocBuilder):
        super().__init__(config)
        self.builder = builder

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        package = self.require_state_value(state, "package")
        handle = self.require_state_value(state, "repository")

        self.builder.clear_stale_artifact(handle.local_path, package.name)

        messages = []
        attempted: List[str] = []
        build_state = BuildState.DEFAULT
        result = BuildAttemptResult(succeeded=False)

        while build_state != BuildState.EXHAUSTED:
            strategy = strategy_for(build_state)
            options = options_for(strategy, package.name)
            attempted.append(strategy.value)

            self.logger.info(f"Building {package} with strategy {strategy.value}")
            result = await self.builder.build(handle.local_path, package.name, options)
            if result.succeeded:
                messages.append(
                    self._message(MessageType.SUCCESS, f"Built {package} with strategy {strategy.value}")
                )
                return {
                    "build_strategy": strategy.value,
                    "attempted_strategies": attempted,
                    "build_output_path": result.output_path,
                    "current_stage": "built",
                    "messages": messages,
                }

            build_state = next_state(build_state, result.diagnostic_text)
            messages.append(
                self._message(
                    MessageType.WARNING,
                    f"Strategy {strategy.value} failed, next: {build_state.value}",
                )
            )

        raise BuildExhaustionError(result.diagnostic_text, attempted)


class ArtifactRelocationStep(BaseStep):
    """Step that moves the built JSON to its canonical place in the output directory."""

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        package = self.require_state_value(state, "package")
        source = self.require_state_value(state, "build_output_path")

        if not os.path.isfile(source):
            raise InfrastructureError(f"Build reported success but {source} does not exist")

        destination = artifact_destination(self.config.output_dir, package)
        os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
        if os.path.exists(destination):
            os.remove(destination)
        shutil.move(source, destination)

        self.logger.info(f"Saved documentation for {package} to {destination}")
        return {
            "artifact_path": destination,
            "current_stage": "relocated",
            "messages": [self._message(MessageType.SUCCESS, f"Documentation saved to {destination}")],
        }
