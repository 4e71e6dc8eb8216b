"""
Documentation build module for CrateDocs.

This package runs cargo rustdoc and decides which fallback invocation to try after a failure.
"""

from cratedocs.builder.rustdoc import RustdocBuilder, artifact_path
from cratedocs.builder.strategies import (
    BuildState,
    BuildStrategy,
    classify,
    next_state,
    options_for,
    strategy_for,
)

__all__ = [
    "BuildState",
    "BuildStrategy",
    "RustdocBuilder",
    "artifact_path",
    "classify",
    "next_state",
    "options_for",
    "strategy_for",
]
