"""
Tag resolution for CrateDocs.

Projects tag their releases inconsistently. The resolver tries a fixed list of
naming conventions, most common first, and returns the first tag that exists.
"""

import logging
from typing import List, Optional, Protocol, Set

logger = logging.getLogger("cratedocs.repo_manager.tag_resolver")


class TagSource(Protocol):
    def list_tags(self, local_path: str) -> Set[str]:
        ...


def tag_candidates(package_name: str, version: str) -> List[str]:
    """Candidate tag names for a version, in priority order."""
    return [
        version,
        f"v{version}",
        f"{package_name}-{version}",
        f"{package_name}-v{version}",
    ]


class TagResolver:
    """Find the git tag that corresponds to a published version."""

    def __init__(self, source: TagSource):
        self.source = source

    def resolve(self, local_path: str, package_name: str, version: str) -> Optional[str]:
        """Return the first candidate that exactly matches an existing tag.

        Args:
            local_path: Working copy to query
            package_name: Crate name
            version: Published version string

        Returns:
            Optional[str]: The matching tag, or None if no candidate exists

        Raises:
            InfrastructureError: If the tags cannot be listed
        """
        tags = self.source.list_tags(local_path)
        for candidate in tag_candidates(package_name, version):
            if candidate in tags:
                logger.debug(f"Resolved {package_name} {version} to tag {candidate}")
                return candidate

        logger.debug(f"No tag among {len(tags)} matches {package_name} {version}")
        return None
