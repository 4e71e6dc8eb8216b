"""
Git repository manager for CrateDocs.

This module handles repository references, cloning, refreshing, tag listing
and checkout of crate source repositories.
"""

import logging
import os
from typing import Optional, Set, Tuple

import git
from git import Repo

from cratedocs.config import CloneProtocol
from cratedocs.exceptions import InfrastructureError, InvalidRepositoryError
from cratedocs.schemas import RepositoryHandle

logger = logging.getLogger("cratedocs.repo_manager")

GITHUB_HOST = "github.com"
REPOSITORY_PREFIXES: Tuple[str, ...] = (
    "https://github.com/",
    "http://github.com/",
    "git@github.com:",
)
PATH_SEPARATOR_MARKER = "__"


def is_repository_reference(value: str) -> bool:
    """Check whether ``value`` starts with a recognized repository prefix."""
    return value.strip().startswith(REPOSITORY_PREFIXES)


def parse_repository_slug(repo_url: str) -> str:
    """Extract the ``org/repo`` identifier from a repository reference.

    Trailing slashes and a trailing ``.git`` are ignored, as are any path
    segments after the repository name (``/tree/master/subcrate``).

    Args:
        repo_url: Repository reference as declared by the crate

    Returns:
        str: The ``org/repo`` slug

    Raises:
        InvalidRepositoryError: If the reference is not a recognized GitHub URL
    """
    reference = repo_url.strip()
    for prefix in REPOSITORY_PREFIXES:
        if reference.startswith(prefix):
            remainder = reference[len(prefix):]
            break
    else:
        raise InvalidRepositoryError(f"Unsupported repository reference: {repo_url}")

    remainder = remainder.rstrip("/")
    if remainder.endswith(".git"):
        remainder = remainder[: -len(".git")].rstrip("/")

    segments = [segment for segment in remainder.split("/") if segment]
    if len(segments) < 2:
        raise InvalidRepositoryError(f"Repository reference has no org/repo part: {repo_url}")

    org, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return f"{org}/{repo}"


def clone_url_for(slug: str, protocol: CloneProtocol = CloneProtocol.SSH) -> str:
    """Build the clone URL for an ``org/repo`` slug."""
    if protocol == CloneProtocol.HTTPS:
        return f"https://{GITHUB_HOST}/{slug}.git"
    return f"git@{GITHUB_HOST}:{slug}.git"


def local_path_for(work_dir: str, slug: str) -> str:
    """Map an ``org/repo`` slug to its working copy under ``work_dir``."""
    return os.path.join(work_dir, slug.replace("/", PATH_SEPARATOR_MARKER))


class RepositoryManager:
    """Manager for local working copies of crate repositories.

    Each repository gets one working copy under ``work_dir``. An existing copy
    is refreshed with a fetch instead of being cloned again.
    """

    def __init__(
        self,
        work_dir: str,
        clone_protocol: CloneProtocol = CloneProtocol.SSH,
        git_executable: Optional[str] = None,
    ):
        """Initialize the repository manager.

        Args:
            work_dir: Directory to clone repositories into
            clone_protocol: Transport used for clone URLs
            git_executable: Path to git executable (if not in PATH)
        """
        self.work_dir = work_dir
        self.clone_protocol = clone_protocol
        if git_executable:
            git.refresh(path=git_executable)

    def handle_for(self, repo_url: str) -> RepositoryHandle:
        """Describe the working copy for a repository reference without touching disk."""
        slug = parse_repository_slug(repo_url)
        return RepositoryHandle(
            remote_url=repo_url,
            clone_url=clone_url_for(slug, self.clone_protocol),
            slug=slug,
            local_path=local_path_for(self.work_dir, slug),
        )

    def acquire(self, repo_url: str) -> RepositoryHandle:
        """Clone the repository, or fetch it if a working copy already exists.

        Raises:
            InvalidRepositoryError: If the reference cannot be parsed
            InfrastructureError: If cloning or fetching fails
        """
        handle = self.handle_for(repo_url)
        if os.path.isdir(os.path.join(handle.local_path, ".git")):
            self.fetch(handle.local_path)
        else:
            self.clone(handle.clone_url, handle.local_path)
        return handle

    def clone(self, remote_url: str, local_path: str) -> None:
        logger.info(f"Cloning {remote_url} into {local_path}")
        os.makedirs(os.path.dirname(local_path) or ".", exist_ok=True)
        try:
            Repo.clone_from(remote_url, local_path)
        except git.exc.GitError as e:
            raise InfrastructureError(f"Failed to clone {remote_url}: {e}") from e

    def fetch(self, local_path: str) -> None:
        logger.info(f"Fetching updates for {local_path}")
        try:
            repo = Repo(local_path)
            repo.remotes.origin.fetch(tags=True, force=True)
        except (git.exc.GitError, AttributeError) as e:
            raise InfrastructureError(f"Failed to fetch {local_path}: {e}") from e

    def checkout(self, local_path: str, tag_name: str) -> None:
        """Check out ``tag_name`` as a detached HEAD.

        The checkout is forced so that lock files rewritten by an earlier build
        do not block it.
        """
        logger.info(f"Checking out {tag_name} in {local_path}")
        try:
            repo = Repo(local_path)
            repo.git.checkout(f"refs/tags/{tag_name}", force=True)
        except git.exc.GitError as e:
            raise InfrastructureError(f"Failed to check out {tag_name} in {local_path}: {e}") from e

    def list_tags(self, local_path: str) -> Set[str]:
        try:
            repo = Repo(local_path)
            return {tag.name for tag in repo.tags}
        except (git.exc.GitError, ValueError) as e:
            raise InfrastructureError(f"Failed to list tags in {local_path}: {e}") from e

    def head_commit(self, local_path: str) -> str:
        try:
            return Repo(local_path).head.commit.hexsha
        except (git.exc.GitError, ValueError) as e:
            raise InfrastructureError(f"Failed to read HEAD in {local_path}: {e}") from e
