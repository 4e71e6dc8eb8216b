"""
Configuration module for CrateDocs.

This module handles loading and validating configuration from environment variables and CLI arguments.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import click

from cratedocs import __version__
from cratedocs.exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Log levels for the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class CloneProtocol(str, Enum):
    """Transport used to build clone URLs."""
    SSH = "ssh"
    HTTPS = "https"


DEFAULT_OUTPUT_DIR = "./localdata"
DEFAULT_WORK_DIR = "/var/tmp/crates-rustdoc-gen"
DEFAULT_REGISTRY_URL = "https://crates.io/api/v1"
DEFAULT_TOP_N = 50
FAILURE_REPORT_NAME = "failures.txt"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """Application configuration for CrateDocs."""

    output_dir: str = DEFAULT_OUTPUT_DIR
    work_dir: str = DEFAULT_WORK_DIR
    failure_report_path: Optional[str] = None

    # Build settings
    toolchain: str = "nightly"
    clone_protocol: CloneProtocol = CloneProtocol.SSH
    semver_checks: bool = False
    build_timeout_seconds: Optional[float] = None

    # Registry settings
    top_n: int = DEFAULT_TOP_N
    registry_url: str = DEFAULT_REGISTRY_URL
    user_agent: str = f"cratedocs/{__version__}"

    # Advanced settings
    git_executable_path: Optional[str] = None
    log_level: LogLevel = LogLevel.INFO
    debug: bool = False

    def __post_init__(self):
        if not self.failure_report_path:
            self.failure_report_path = os.path.join(self.output_dir, FAILURE_REPORT_NAME)

    @classmethod
    def from_env_and_args(
        cls,
        output_dir: Optional[str] = None,
        work_dir: Optional[str] = None,
        failure_report_path: Optional[str] = None,
        clone_protocol: Optional[str] = None,
        semver_checks: Optional[bool] = None,
        build_timeout: Optional[float] = None,
        top_n: Optional[int] = None,
        debug: bool = False,
    ) -> "AppConfig":
        """Create configuration from environment variables and CLI arguments.

        CLI arguments take precedence over environment variables.

        Args:
            output_dir: Directory that receives the rustdoc JSON artifacts
            work_dir: Directory that holds the cloned repositories
            failure_report_path: File the failure report is appended to
            clone_protocol: "ssh" or "https"
            semver_checks: Run cargo-semver-checks before each build
            build_timeout: Seconds before a build attempt is abandoned
            top_n: Number of crates to take from the registry
            debug: Enable debug mode

        Returns:
            AppConfig: Application configuration

        Raises:
            ConfigurationError: If a numeric or enumerated value cannot be parsed
        """
        env_output_dir = os.getenv("CRATEDOCS_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)
        env_work_dir = os.getenv("CRATEDOCS_WORK_DIR", DEFAULT_WORK_DIR)
        env_failure_report = os.getenv("CRATEDOCS_FAILURE_REPORT")
        env_toolchain = os.getenv("CRATEDOCS_TOOLCHAIN", "nightly")
        env_clone_protocol = os.getenv("CRATEDOCS_CLONE_PROTOCOL", CloneProtocol.SSH.value)
        env_semver_checks = os.getenv("CRATEDOCS_SEMVER_CHECKS", "")
        env_build_timeout = os.getenv("CRATEDOCS_BUILD_TIMEOUT")
        env_top_n = os.getenv("CRATEDOCS_TOP_N", str(DEFAULT_TOP_N))
        env_registry_url = os.getenv("CRATEDOCS_REGISTRY_URL", DEFAULT_REGISTRY_URL)
        env_user_agent = os.getenv("CRATEDOCS_USER_AGENT", f"cratedocs/{__version__}")
        env_log_level = os.getenv("LOG_LEVEL", LogLevel.INFO.value)
        git_executable = os.getenv("GIT_EXECUTABLE_PATH")

        # CLI args override env vars
        final_output_dir = output_dir or env_output_dir
        final_semver_checks = (
            semver_checks if semver_checks is not None else env_semver_checks.lower() in _TRUTHY
        )

        try:
            final_timeout = build_timeout
            if final_timeout is None and env_build_timeout:
                final_timeout = float(env_build_timeout)
            final_top_n = top_n if top_n is not None else int(env_top_n)
            final_protocol = CloneProtocol((clone_protocol or env_clone_protocol).lower())
            final_log_level = LogLevel(env_log_level.upper())
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        config = cls(
            output_dir=final_output_dir,
            work_dir=work_dir or env_work_dir,
            failure_report_path=failure_report_path or env_failure_report,
            toolchain=env_toolchain,
            clone_protocol=final_protocol,
            semver_checks=final_semver_checks,
            build_timeout_seconds=final_timeout,
            top_n=final_top_n,
            registry_url=env_registry_url.rstrip("/"),
            user_agent=env_user_agent,
            git_executable_path=git_executable,
            log_level=final_log_level,
            debug=debug,
        )

        return config

    def validate(self) -> bool:
        """Validate the configuration.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        problems = []

        if not self.output_dir:
            problems.append("Output directory (CRATEDOCS_OUTPUT_DIR)")

        if not self.work_dir:
            problems.append("Working directory (CRATEDOCS_WORK_DIR)")

        if not self.toolchain:
            problems.append("Rust toolchain (CRATEDOCS_TOOLCHAIN)")

        if self.top_n < 1:
            problems.append("Number of crates must be at least 1 (CRATEDOCS_TOP_N)")

        if self.build_timeout_seconds is not None and self.build_timeout_seconds <= 0:
            problems.append("Build timeout must be positive (CRATEDOCS_BUILD_TIMEOUT)")

        if problems:
            click.echo("❌ Invalid configuration:")
            for field in problems:
                click.echo(f"   - {field}")
            return False

        # Enable debug mode if requested
        if self.debug and self.log_level != LogLevel.DEBUG:
            self.log_level = LogLevel.DEBUG
            click.echo("🔍 Debug mode enabled")

        if not self.user_agent:
            click.echo("⚠️ Warning: No User-Agent configured. crates.io rejects anonymous clients.")
            self.user_agent = f"cratedocs/{__version__}"

        return True
