"""
Schemas for CrateDocs.

This module defines the data structures passed between the registry client,
the repository manager, the documentation builder and the batch runner.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageType(str, Enum):
    """Type of step message for logging and display."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class FeatureSet(str, Enum):
    """Which optional cargo features a build enables."""
    ALL = "all"
    DEFAULT = "default"


class TargetRestriction(str, Enum):
    """Which build target a build is restricted to."""
    NONE = "none"
    LIBRARY = "lib"


class PackageOutcomeStatus(str, Enum):
    """How processing a single package ended."""
    BUILT = "built"
    NO_TAG = "no_tag"
    FAILED = "failed"


class PackageVersion(BaseModel):
    """A published crate version and the repository it was built from."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    repository: str

    @property
    def normalized_name(self) -> str:
        return self.name.lower().replace("-", "_")

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


class RepositoryHandle(BaseModel):
    """Local working copy of a cloned repository."""

    remote_url: str
    clone_url: str
    slug: str
    local_path: str


class BuildOptions(BaseModel):
    """Options for a single documentation tool invocation."""

    model_config = ConfigDict(frozen=True)

    package: Optional[str] = None
    features: FeatureSet = FeatureSet.ALL
    target: TargetRestriction = TargetRestriction.NONE


class ProcessResult(BaseModel):
    """Result of running an external command to completion."""

    exit_status: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0 and not self.timed_out


class BuildAttemptResult(BaseModel):
    """Result of one documentation build attempt."""

    succeeded: bool
    diagnostic_text: str = ""
    output_path: Optional[str] = None


class PackageOutcome(BaseModel):
    """Result of processing one package."""

    package: PackageVersion
    status: PackageOutcomeStatus
    tag: Optional[str] = None
    artifact_path: Optional[str] = None
    error: Optional[str] = None


class FailureRecord(BaseModel):
    """A package that failed, with the error that ended its processing."""

    model_config = ConfigDict(frozen=True)

    package: PackageVersion
    error: str


class BatchSummary(BaseModel):
    """Counts and failures for a whole batch run."""

    built: List[PackageOutcome] = Field(default_factory=list)
    no_tag: List[PackageOutcome] = Field(default_factory=list)
    failures: List[FailureRecord] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.built) + len(self.no_tag) + len(self.failures)


class StepMessage(BaseModel):
    """Message from a pipeline step for logging and display."""

    step_name: str
    message_type: MessageType
    content: str
    timestamp: str
