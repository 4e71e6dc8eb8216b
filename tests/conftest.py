"""
Pytest configuration for CrateDocs tests.

This module provides fixtures and common utilities for all tests.
"""

import os
import shutil
from typing import Iterable, List, Optional

import pytest
from git import Actor, Repo

from cratedocs.config import AppConfig, CloneProtocol, LogLevel
from cratedocs.repo_manager import RepositoryManager
from cratedocs.schemas import PackageVersion, ProcessResult, RepositoryHandle

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

AUTHOR = Actor("CrateDocs Tests", "tests@example.com")

CONFIG_ENV_VARS = [
    "CRATEDOCS_OUTPUT_DIR",
    "CRATEDOCS_WORK_DIR",
    "CRATEDOCS_FAILURE_REPORT",
    "CRATEDOCS_TOOLCHAIN",
    "CRATEDOCS_CLONE_PROTOCOL",
    "CRATEDOCS_SEMVER_CHECKS",
    "CRATEDOCS_BUILD_TIMEOUT",
    "CRATEDOCS_TOP_N",
    "CRATEDOCS_REGISTRY_URL",
    "CRATEDOCS_USER_AGENT",
    "GIT_EXECUTABLE_PATH",
    "LOG_LEVEL",
]


class FakeProcessRunner:
    """Process runner that replays scripted results instead of running commands.

    When a scripted rustdoc invocation succeeds, the runner writes the JSON
    artifact cargo would have produced so that relocation can find it.
    """

    def __init__(
        self,
        results: Optional[Iterable[ProcessResult]] = None,
        artifact_content: str = '{"format_version": 30}',
        workspace_package: Optional[str] = None,
    ):
        self.results: List[ProcessResult] = list(results or [])
        self.artifact_content = artifact_content
        # Package rustdoc documents when no -p is given
        self.workspace_package = workspace_package
        self.calls = []

    async def invoke(self, command, args, cwd=None, timeout=None):
        args = list(args)
        self.calls.append({"command": command, "args": args, "cwd": cwd, "timeout": timeout})
        result = self.results.pop(0) if self.results else ProcessResult(exit_status=0)

        if result.succeeded and "rustdoc" in args and cwd:
            package = args[args.index("-p") + 1] if "-p" in args else (self.workspace_package or os.path.basename(cwd))
            doc_dir = os.path.join(cwd, "target", "doc")
            os.makedirs(doc_dir, exist_ok=True)
            with open(os.path.join(doc_dir, f"{package.replace('-', '_')}.json"), "w") as f:
                f.write(self.artifact_content)

        return result

    def rustdoc_calls(self):
        return [call for call in self.calls if "rustdoc" in call["args"]]


def failed(stderr: str = "error: could not compile") -> ProcessResult:
    return ProcessResult(exit_status=101, stderr=stderr)


def succeeded(stdout: str = "") -> ProcessResult:
    return ProcessResult(exit_status=0, stdout=stdout)


def make_git_repo(path: str, tags: Iterable[str] = (), files: Optional[dict] = None) -> Repo:
    """Create a repository at ``path`` with one commit per tag."""
    os.makedirs(path, exist_ok=True)
    repo = Repo.init(path)

    readme = os.path.join(path, "README.md")
    with open(readme, "w") as f:
        f.write("# demo\n")
    for name, content in (files or {}).items():
        with open(os.path.join(path, name), "w") as f:
            f.write(content)
    repo.index.add([os.path.relpath(readme, path)] + list((files or {}).keys()))
    repo.index.commit("initial commit", author=AUTHOR, committer=AUTHOR)

    for tag in tags:
        with open(os.path.join(path, "VERSION"), "w") as f:
            f.write(tag)
        repo.index.add(["VERSION"])
        repo.index.commit(f"release {tag}", author=AUTHOR, committer=AUTHOR)
        repo.create_tag(tag)

    return repo


class LocalRepositoryManager(RepositoryManager):
    """Repository manager that clones from local origins instead of GitHub."""

    def __init__(self, work_dir: str, origins: dict):
        super().__init__(work_dir=work_dir, clone_protocol=CloneProtocol.HTTPS)
        self.origins = origins

    def handle_for(self, repo_url: str) -> RepositoryHandle:
        handle = super().handle_for(repo_url)
        return handle.model_copy(update={"clone_url": self.origins[handle.slug]})


@pytest.fixture
def mock_config(tmp_path):
    """Create a configuration that writes only inside the test's temp directory."""
    return AppConfig(
        output_dir=str(tmp_path / "output"),
        work_dir=str(tmp_path / "work"),
        toolchain="nightly",
        clone_protocol=CloneProtocol.HTTPS,
        semver_checks=False,
        top_n=5,
        user_agent="cratedocs-tests",
        log_level=LogLevel.INFO,
    )


@pytest.fixture
def demo_package():
    """The package used by most pipeline tests."""
    return PackageVersion(name="demo", version="1.0.0", repository="https://github.com/org/demo")


@pytest.fixture
def demo_handle(mock_config):
    """Handle pointing at an (initially empty) working copy for the demo package."""
    local_path = os.path.join(mock_config.work_dir, "org__demo")
    os.makedirs(local_path, exist_ok=True)
    return RepositoryHandle(
        remote_url="https://github.com/org/demo",
        clone_url="https://github.com/org/demo.git",
        slug="org/demo",
        local_path=local_path,
    )


@pytest.fixture
def fake_runner():
    """A process runner whose commands all succeed unless results are scripted."""
    return FakeProcessRunner()
