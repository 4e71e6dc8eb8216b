"""
Orchestrator for CrateDocs.

This module chains the pipeline steps for a single package using LangGraph:

    repository_sync -> tag_resolution -> [compatibility_check] -> checkout
        -> documentation_build -> artifact_relocation

The graph ends right after tag resolution when no tag matches the published
version. Every error raised by a step is caught here and reported as a failed
outcome, so one bad package never stops a batch.
"""

import logging
import operator
from typing import Annotated, Any, List, Optional

from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, Field

from cratedocs.builder import RustdocBuilder
from cratedocs.config import AppConfig
from cratedocs.process import ProcessRunner
from cratedocs.repo_manager import RepositoryManager, TagResolver
from cratedocs.schemas import (
    PackageOutcome,
    PackageOutcomeStatus,
    PackageVersion,
    RepositoryHandle,
    StepMessage,
)
from cratedocs.steps import (
    ArtifactRelocationStep,
    CheckoutStep,
    CompatibilityCheckStep,
    DocumentationBuildStep,
    RepositorySyncStep,
    TagResolutionStep,
)

logger = logging.getLogger("cratedocs.orchestrator")


class PackageWorkflowState(BaseModel):
    """State of the pipeline for one package."""

    # Initial input
    package: PackageVersion = Field(description="Package version being documented")

    # State from repository sync
    repository: Optional[RepositoryHandle] = Field(default=None, description="Local working copy")

    # State from tag resolution and checkout
    tag: Optional[str] = Field(default=None, description="Git tag matching the published version")
    commit: Optional[str] = Field(default=None, description="Commit checked out for the build")

    # State from compatibility check
    compatibility_ok: Optional[bool] = Field(default=None, description="cargo-semver-checks result")

    # State from documentation build
    build_strategy: Optional[str] = Field(default=None, description="Strategy that produced the build")
    attempted_strategies: List[str] = Field(default_factory=list, description="Strategies tried, in order")
    build_output_path: Optional[str] = Field(default=None, description="Where rustdoc wrote its JSON")

    # State from relocation
    artifact_path: Optional[str] = Field(default=None, description="Final location of the JSON")

    # Workflow control and messaging
    current_stage: str = Field(default="start", description="Current stage of the workflow")
    messages: Annotated[List[StepMessage], operator.add] = Field(
        default_factory=list, description="Messages from steps"
    )


class BuildOrchestrator:
    """Produce the rustdoc JSON artifact for one package version at a time."""

    def __init__(
        self,
        config: AppConfig,
        repo_manager: Optional[RepositoryManager] = None,
        runner: Optional[ProcessRunner] = None,
        builder: Optional[RustdocBuilder] = None,
    ):
        """Initialize the orchestrator and compile its workflow.

        Args:
            config: Application configuration
            repo_manager: Repository access; built from config if omitted
            runner: Process runner shared by the build and compatibility steps
            builder: rustdoc builder; built from config if omitted
        """
        self.config = config
        self.repo_manager = repo_manager or RepositoryManager(
            work_dir=config.work_dir,
            clone_protocol=config.clone_protocol,
            git_executable=config.git_executable_path,
        )
        self.runner = runner or ProcessRunner()
        self.builder = builder or RustdocBuilder(
            runner=self.runner,
            toolchain=config.toolchain,
            timeout=config.build_timeout_seconds,
        )

        self.repository_sync = RepositorySyncStep(config, self.repo_manager)
        self.tag_resolution = TagResolutionStep(config, TagResolver(self.repo_manager))
        self.compatibility_check = CompatibilityCheckStep(config, self.runner)
        self.checkout = CheckoutStep(config, self.repo_manager)
        self.documentation_build = DocumentationBuildStep(config, self.builder)
        self.artifact_relocation = ArtifactRelocationStep(config)

        self.graph = self._create_workflow()

    def _create_workflow(self):
        workflow = StateGraph(PackageWorkflowState)

        workflow.add_node("repository_sync", self.repository_sync.execute)
        workflow.add_node("tag_resolution", self.tag_resolution.execute)
        workflow.add_node("compatibility_check", self.compatibility_check.execute)
        workflow.add_node("checkout", self.checkout.execute)
        workflow.add_node("documentation_build", self.documentation_build.execute)
        workflow.add_node("artifact_relocation", self.artifact_relocation.execute)

        workflow.add_edge(START, "repository_sync")
        workflow.add_edge("repository_sync", "tag_resolution")
        workflow.add_conditional_edges(
            "tag_resolution",
            self._route_after_tag,
            {
                "compatibility_check": "compatibility_check",
                "checkout": "checkout",
                END: END,
            },
        )
        workflow.add_edge("compatibility_check", "checkout")
        workflow.add_edge("checkout", "documentation_build")
        workflow.add_edge("documentation_build", "artifact_relocation")
        workflow.add_edge("artifact_relocation", END)

        return workflow.compile()

    def _route_after_tag(self, state: PackageWorkflowState) -> str:
        if not state.tag:
            return END
        if self.config.semver_checks:
            return "compatibility_check"
        return "checkout"

    async def run_workflow(self, package: PackageVersion) -> PackageWorkflowState:
        """Run the pipeline for ``package`` and return its final state.

        Raises:
            Exception: Whatever the failing step raised
        """
        result: Any = await self.graph.ainvoke(PackageWorkflowState(package=package))
        if isinstance(result, PackageWorkflowState):
            return result
        return PackageWorkflowState.model_validate(result)

    async def process(self, package: PackageVersion) -> PackageOutcome:
        """Process one package, converting every error into a failed outcome.

        Args:
            package: Package version to document

        Returns:
            PackageOutcome: built, no_tag or failed
        """
        logger.info(f"Processing {package} from {package.repository}")
        try:
            state = await self.run_workflow(package)
        except Exception as e:
            logger.error(f"Failed to process {package}: {e}")
            logger.debug("Failure details", exc_info=True)
            return PackageOutcome(
                package=package,
                status=PackageOutcomeStatus.FAILED,
                error=str(e),
            )

        logger.debug(
            f"Finished {package}: stage={state.current_stage} tag={state.tag} "
            f"strategy={state.build_strategy} attempted={state.attempted_strategies}"
        )

        if not state.tag:
            return PackageOutcome(package=package, status=PackageOutcomeStatus.NO_TAG)

        return PackageOutcome(
            package=package,
            status=PackageOutcomeStatus.BUILT,
            tag=state.tag,
            artifact_path=state.artifact_path,
        )

