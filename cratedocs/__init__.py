"""
CrateDocs - Batch generation of rustdoc JSON snapshots for popular crates.

This package provides functionality to:
1. Query crates.io for the most downloaded crates
2. Clone or refresh each crate's source repository
3. Locate the git tag matching the published version
4. Build rustdoc JSON with a cascade of fallback invocations
5. Collect the artifacts and report the packages that failed
"""

__version__ = "0.1.0"
