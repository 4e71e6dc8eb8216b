"""
Repository steps for CrateDocs.

These steps bring a crate's working copy up to date, find the tag for the
published version and check it out.
"""

from typing import Any, Dict, Union

from pydantic import BaseModel

from cratedocs.config import AppConfig
from cratedocs.repo_manager import RepositoryManager, TagResolver
from cratedocs.schemas import MessageType
from cratedocs.steps.base import BaseStep


class RepositorySyncStep(BaseStep):
    """Step that clones a crate's repository or refreshes an existing clone."""

    def __init__(self, config: AppConfig, repo_manager: RepositoryManager):
        super().__init__(config)
        self.repo_manager = repo_manager

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        package = self.require_state_value(state, "package")

        handle = self.repo_manager.acquire(package.repository)
        self.logger.info(f"Working copy for {package} ready at {handle.local_path}")

        return {
            "repository": handle,
            "current_stage": "repository_synced",
            "messages": [self._message(MessageType.INFO, f"Repository {handle.slug} ready")],
        }


class TagResolutionStep(BaseStep):
    """Step that finds the git tag matching the package's published version.

    A missing tag is an expected outcome, not an error: ``tag`` stays unset and
    the pipeline ends for this package.
    """

    def __init__(self, config: AppConfig, resolver: TagResolver):
        super().__init__(config)
        self.resolver = resolver

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        package = self.require_state_value(state, "package")
        handle = self.require_state_value(state, "repository")

        tag = self.resolver.resolve(handle.local_path, package.name, package.version)
        if tag is None:
            self.logger.info(f"No tag found for {package} in {handle.slug}, skipping")
            return {
                "tag": None,
                "current_stage": "no_tag",
                "messages": [self._message(MessageType.WARNING, f"No tag found for {package}")],
            }

        self.logger.info(f"Using tag {tag} for {package}")
        return {
            "tag": tag,
            "current_stage": "tag_resolved",
            "messages": [self._message(MessageType.INFO, f"Resolved tag {tag}")],
        }


class CheckoutStep(BaseStep):
    """Step that checks out the resolved tag."""

    def __init__(self, config: AppConfig, repo_manager: RepositoryManager):
        super().__init__(config)
        self.repo_manager = repo_manager

    async def _execute(self, state: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
        handle = self.require_state_value(state, "repository")
        tag = self.require_state_value(state, "tag")

        self.repo_manager.checkout(handle.local_path, tag)
        commit = self.repo_manager.head_commit(handle.local_path)

        return {
            "commit": commit,
            "current_stage": "checked_out",
            "messages": [self._message(MessageType.INFO, f"Checked out {tag} ({commit[:12]})")],
        }
