"""
Unit tests for TagResolver.

This module tests how published versions are mapped to git tags:
- Candidate order
- Exact, whole-name matching
- Missing tags and repository errors
"""

from unittest.mock import MagicMock

import pytest

from cratedocs.exceptions import InfrastructureError
from cratedocs.repo_manager import TagResolver, tag_candidates


def resolver_with_tags(*tags):
    source = MagicMock()
    source.list_tags.return_value = set(tags)
    return TagResolver(source), source


class TestTagCandidates:
    """Tests for the candidate list."""

    def test_candidates_in_priority_order(self):
        assert tag_candidates("foo", "2.0.0") == ["2.0.0", "v2.0.0", "foo-2.0.0", "foo-v2.0.0"]

    def test_candidates_keep_prerelease_suffix(self):
        assert tag_candidates("foo", "0.3.0-alpha.1")[1] == "v0.3.0-alpha.1"


class TestTagResolver:
    """Tests for the TagResolver class."""

    def test_v_prefixed_tag(self):
        resolver, source = resolver_with_tags("v2.0.0")

        assert resolver.resolve("/repo", "foo", "2.0.0") == "v2.0.0"
        source.list_tags.assert_called_once_with("/repo")

    def test_plain_version_wins_over_later_candidates(self):
        resolver, _ = resolver_with_tags("foo-v1.2.3", "foo-1.2.3", "v1.2.3", "1.2.3")

        assert resolver.resolve("/repo", "foo", "1.2.3") == "1.2.3"

    def test_v_prefix_wins_over_package_prefixed(self):
        resolver, _ = resolver_with_tags("foo-1.2.3", "v1.2.3")

        assert resolver.resolve("/repo", "foo", "1.2.3") == "v1.2.3"

    def test_package_prefixed_tag(self):
        resolver, _ = resolver_with_tags("bar-1.0.0", "foo-1.0.0")

        assert resolver.resolve("/repo", "foo", "1.0.0") == "foo-1.0.0"

    def test_package_prefixed_v_tag(self):
        resolver, _ = resolver_with_tags("foo-v1.0.0", "foo-v1.0.1")

        assert resolver.resolve("/repo", "foo", "1.0.0") == "foo-v1.0.0"

    def test_superstring_tag_does_not_match(self):
        resolver, _ = resolver_with_tags("1.2.30", "v1.2.30", "foo-1.2.3-rc1")

        assert resolver.resolve("/repo", "foo", "1.2.3") is None

    def test_substring_tag_does_not_match(self):
        resolver, _ = resolver_with_tags("1.2")

        assert resolver.resolve("/repo", "foo", "1.2.3") is None

    def test_no_tags_returns_none(self):
        resolver, _ = resolver_with_tags()

        assert resolver.resolve("/repo", "foo", "1.0.0") is None

    def test_listing_failure_is_not_a_missing_tag(self):
        source = MagicMock()
        source.list_tags.side_effect = InfrastructureError("corrupt repository")
        resolver = TagResolver(source)

        with pytest.raises(InfrastructureError):
            resolver.resolve("/repo", "foo", "1.0.0")
