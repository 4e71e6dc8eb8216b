"""
Build strategy selection for CrateDocs.

When the default rustdoc invocation fails, its diagnostic output decides which
single fallback chain is tried next. The retry policy is a small state machine:

    DEFAULT --"ambiguous"-------------------> AMBIGUOUS_RETRY --fail--> AMBIGUOUS_RETRY_DEFAULT_FEATURES
    DEFAULT --"--lib" and "single target"---> LIB_ONLY_RETRY  --fail--> LIB_ONLY_RETRY_DEFAULT_FEATURES
    DEFAULT --anything else-----------------> GENERIC_RETRY
    any other state --fail------------------> EXHAUSTED

cargo reports these problems only as text, so classification is plain
substring matching. An unrelated message that happens to contain "ambiguous"
or "single target" will be classified the same way.
"""

from enum import Enum
from typing import Optional

from cratedocs.schemas import BuildOptions, FeatureSet, TargetRestriction

AMBIGUOUS_MARKER = "ambiguous"
LIB_MARKER = "--lib"
SINGLE_TARGET_MARKER = "single target"


class BuildStrategy(str, Enum):
    """Catalog of rustdoc invocations, in the order they can be attempted."""
    DEFAULT = "S0"
    AMBIGUOUS = "S1"
    AMBIGUOUS_DEFAULT_FEATURES = "S1b"
    LIB_ONLY = "S2"
    LIB_ONLY_DEFAULT_FEATURES = "S2b"
    GENERIC = "S3"


class BuildState(str, Enum):
    """States of the retry state machine."""
    DEFAULT = "default"
    AMBIGUOUS_RETRY = "ambiguous_retry"
    AMBIGUOUS_RETRY_DEFAULT_FEATURES = "ambiguous_retry_default_features"
    LIB_ONLY_RETRY = "lib_only_retry"
    LIB_ONLY_RETRY_DEFAULT_FEATURES = "lib_only_retry_default_features"
    GENERIC_RETRY = "generic_retry"
    EXHAUSTED = "exhausted"


_STATE_STRATEGIES = {
    BuildState.DEFAULT: BuildStrategy.DEFAULT,
    BuildState.AMBIGUOUS_RETRY: BuildStrategy.AMBIGUOUS,
    BuildState.AMBIGUOUS_RETRY_DEFAULT_FEATURES: BuildStrategy.AMBIGUOUS_DEFAULT_FEATURES,
    BuildState.LIB_ONLY_RETRY: BuildStrategy.LIB_ONLY,
    BuildState.LIB_ONLY_RETRY_DEFAULT_FEATURES: BuildStrategy.LIB_ONLY_DEFAULT_FEATURES,
    BuildState.GENERIC_RETRY: BuildStrategy.GENERIC,
}

# Sub-fallbacks taken when a retry itself fails. Anything not listed is terminal.
_RETRY_FAILURE_TRANSITIONS = {
    BuildState.AMBIGUOUS_RETRY: BuildState.AMBIGUOUS_RETRY_DEFAULT_FEATURES,
    BuildState.LIB_ONLY_RETRY: BuildState.LIB_ONLY_RETRY_DEFAULT_FEATURES,
}


def classify(diagnostic_text: str) -> BuildState:
    """Pick the fallback chain for a failed default build."""
    if AMBIGUOUS_MARKER in diagnostic_text:
        return BuildState.AMBIGUOUS_RETRY
    if LIB_MARKER in diagnostic_text and SINGLE_TARGET_MARKER in diagnostic_text:
        return BuildState.LIB_ONLY_RETRY
    return BuildState.GENERIC_RETRY


def next_state(state: BuildState, diagnostic_text: str) -> BuildState:
    """Transition taken after the build for ``state`` failed.

    Only the default build's diagnostic is inspected; retries fall through to
    their default-features variant or to EXHAUSTED.
    """
    if state == BuildState.DEFAULT:
        return classify(diagnostic_text)
    return _RETRY_FAILURE_TRANSITIONS.get(state, BuildState.EXHAUSTED)


def strategy_for(state: BuildState) -> Optional[BuildStrategy]:
    """Strategy run in ``state``; None once exhausted."""
    return _STATE_STRATEGIES.get(state)


def options_for(strategy: BuildStrategy, package_name: str) -> BuildOptions:
    """Translate a strategy into concrete rustdoc options for ``package_name``."""
    if strategy == BuildStrategy.DEFAULT:
        return BuildOptions(package=package_name, features=FeatureSet.ALL)
    if strategy == BuildStrategy.AMBIGUOUS:
        return BuildOptions(package=None, features=FeatureSet.ALL)
    if strategy == BuildStrategy.AMBIGUOUS_DEFAULT_FEATURES:
        return BuildOptions(package=None, features=FeatureSet.DEFAULT)
    if strategy == BuildStrategy.LIB_ONLY:
        return BuildOptions(
            package=package_name, features=FeatureSet.ALL, target=TargetRestriction.LIBRARY
        )
    if strategy == BuildStrategy.LIB_ONLY_DEFAULT_FEATURES:
        return BuildOptions(
            package=package_name, features=FeatureSet.DEFAULT, target=TargetRestriction.LIBRARY
        )
    if strategy == BuildStrategy.GENERIC:
        return BuildOptions(package=package_name, features=FeatureSet.DEFAULT)
    raise ValueError(f"Unknown build strategy: {strategy}")
