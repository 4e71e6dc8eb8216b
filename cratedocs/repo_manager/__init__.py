"""
Repository management module for CrateDocs.

This package handles repository references, cloning, refreshing, checkout and tag resolution.
"""

from cratedocs.repo_manager.git_repo import (
    RepositoryManager,
    clone_url_for,
    is_repository_reference,
    local_path_for,
    parse_repository_slug,
)
from cratedocs.repo_manager.tag_resolver import TagResolver, tag_candidates

__all__ = [
    "RepositoryManager",
    "TagResolver",
    "clone_url_for",
    "is_repository_reference",
    "local_path_for",
    "parse_repository_slug",
    "tag_candidates",
]
