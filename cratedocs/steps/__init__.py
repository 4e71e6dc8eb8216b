"""
Pipeline steps for CrateDocs.

This package contains the steps that the orchestrator chains together for
each package: repository sync, tag resolution, compatibility check, checkout,
documentation build and artifact relocation.
"""

from cratedocs.steps.base import BaseStep
from cratedocs.steps.build import ArtifactRelocationStep, DocumentationBuildStep, artifact_destination
from cratedocs.steps.compatibility import CompatibilityCheckStep
from cratedocs.steps.repository import CheckoutStep, RepositorySyncStep, TagResolutionStep

__all__ = [
    "ArtifactRelocationStep",
    "BaseStep",
    "CheckoutStep",
    "CompatibilityCheckStep",
    "DocumentationBuildStep",
    "RepositorySyncStep",
    "TagResolutionStep",
    "artifact_destination",
]
