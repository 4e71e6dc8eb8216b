"""
Exceptions for CrateDocs.

Per-package errors are caught by the orchestrator and turned into failure
records; only registry and configuration errors stop a batch.
"""

from typing import List, Optional


class CrateDocsError(Exception):
    pass


class ConfigurationError(CrateDocsError):
    """Invalid or incomplete configuration."""
    pass


class RegistryError(CrateDocsError):
    """The package registry could not be queried."""
    pass


class InfrastructureError(CrateDocsError):
    """Repository access failed: clone, fetch, checkout or tag listing."""
    pass


class InvalidRepositoryError(InfrastructureError):
    """A repository reference could not be turned into a clone URL."""
    pass


class BuildExhaustionError(CrateDocsError):
    """Every applicable build strategy failed for a package."""

    def __init__(self, diagnostic_text: str, attempted: Optional[List[str]] = None):
        self.diagnostic_text = diagnostic_text
        self.attempted = attempted or []
        tried = ", ".join(self.attempted) or "none"
        super().__init__(f"All build strategies failed (tried: {tried})\n{diagnostic_text}")


class NonFatalAuxiliaryError(CrateDocsError):
    """The optional compatibility check failed. Logged only."""
    pass
