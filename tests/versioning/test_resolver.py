"""Tests for constraint resolution against tag sets."""
from __future__ import annotations

import random
from typing import List

import pytest
import semantic_version

from engine.errors import NotFoundError
from models.versioned_tag import ResolvedTarget, VersionedTag
from versioning.constraint import Exact, Latest, XRangeMajor, XRangeMajorMinor, parse_constraint
from versioning.resolver import resolve
from versioning.tags import sort_tags


def make_tag(name: str, commit: str | None = None) -> VersionedTag:
    version = semantic_version.Version(name.lstrip("v"))
    return VersionedTag(version=version, name=name, commit=commit or f"sha-{name}")


@pytest.fixture
def tags() -> List[VersionedTag]:
    return [
        make_tag(name)
        for name in [
            "1.2.0",
            "1.3.0",
            "1.3.1",
            "1.3.2-rc.1",
            "1.4.0",
            "1.4.2",
            "2.0.0-beta.2",
            "2.0.0-beta.10",
        ]
    ]


def test_latest_picks_global_highest(tags: List[VersionedTag]) -> None:
    """Test latest resolves to the highest precedence tag overall."""
    target = resolve(Latest(), tags)
    assert target == ResolvedTarget(commit="sha-2.0.0-beta.10", tag="2.0.0-beta.10")


def test_release_outranks_prerelease(tags: List[VersionedTag]) -> None:
    """Test a release beats pre-releases of the same version."""
    tags.append(make_tag("2.0.0"))
    assert resolve(Latest(), tags).tag == "2.0.0"


def test_xrange_major_minor_never_leaves_its_minor(tags: List[VersionedTag]) -> None:
    """Test 1.3.x stays on 1.3 even though 1.4 is higher."""
    target = resolve(XRangeMajorMinor(1, 3), tags)
    assert target.tag == "1.3.2-rc.1"
    assert target.commit == "sha-1.3.2-rc.1"

    target = resolve(XRangeMajorMinor(1, 4), tags)
    assert target.tag == "1.4.2"


def test_xrange_major(tags: List[VersionedTag]) -> None:
    """Test 1.x picks the highest tag in major 1."""
    assert resolve(XRangeMajor(1), tags).tag == "1.4.2"
    assert resolve(XRangeMajor(2), tags).tag == "2.0.0-beta.10"


def test_exact(tags: List[VersionedTag]) -> None:
    """Test an exact version finds only that tag."""
    assert resolve(parse_constraint("1.3.1"), tags).tag == "1.3.1"
    with pytest.raises(NotFoundError):
        resolve(parse_constraint("1.3.3"), tags)


@pytest.mark.parametrize("constraint", [XRangeMajorMinor(1, 5), XRangeMajor(3)])
def test_unsatisfiable_xrange(tags: List[VersionedTag], constraint) -> None:
    """Test x-ranges without matches raise NotFoundError."""
    with pytest.raises(NotFoundError, match="no tag satisfies"):
        resolve(constraint, tags)


@pytest.mark.parametrize(
    "constraint",
    [XRangeMajorMinor(1, 3), XRangeMajor(1), Exact(semantic_version.Version("1.0.0"))],
)
def test_empty_tag_set_is_not_found(constraint) -> None:
    """Test non-latest constraints fail on a repository without tags."""
    with pytest.raises(NotFoundError):
        resolve(constraint, [], default_commit="abc123")


def test_latest_without_tags_uses_default_branch() -> None:
    """Test latest falls back to the default branch tip."""
    target = resolve(Latest(), [], default_commit="abc123")
    assert target == ResolvedTarget(commit="abc123", tag=None)
    assert target.describe().startswith("default branch")


def test_latest_without_tags_or_branch() -> None:
    """Test latest fails when nothing can be resolved."""
    with pytest.raises(NotFoundError):
        resolve(Latest(), [])


def test_resolution_is_deterministic(tags: List[VersionedTag]) -> None:
    """Test input order never changes the result."""
    expected = resolve(XRangeMajor(1), tags)
    for seed in range(10):
        shuffled = list(tags)
        random.Random(seed).shuffle(shuffled)
        assert resolve(XRangeMajor(1), shuffled) == expected


def test_equal_precedence_prefers_greatest_name() -> None:
    """Test ties between v-prefixed and bare tags break on the name."""
    tags = [make_tag("1.0.0", "bare"), make_tag("v1.0.0", "prefixed")]
    assert resolve(Latest(), tags).commit == "prefixed"
    assert resolve(Latest(), list(reversed(tags))).commit == "prefixed"


def test_sort_tags_precedence() -> None:
    """Test semver precedence rules for pre-release identifiers."""
    names = ["1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-alpha.beta", "1.0.0-beta",
             "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0-rc.1", "1.0.0"]
    shuffled = [make_tag(n) for n in reversed(names)]
    random.Random(1).shuffle(shuffled)
    assert [t.name for t in sort_tags(shuffled)] == list(reversed(names))


def test_sort_tags_ignores_build_metadata() -> None:
    """Test build metadata never outranks a release and ties fall back to the name."""
    tags = [make_tag("1.0.0+build.9"), make_tag("1.0.1"), make_tag("1.0.0")]
    assert [t.name for t in sort_tags(tags)] == ["1.0.1", "1.0.0+build.9", "1.0.0"]
