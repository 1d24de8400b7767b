"""Resolve a version constraint against a repository's tags."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from engine.errors import NotFoundError
from models.versioned_tag import ResolvedTarget, VersionedTag
from versioning.constraint import Constraint, Latest
from versioning.tags import sort_tags

logger = logging.getLogger(__name__)


def resolve(
    constraint: Constraint,
    tags: Sequence[VersionedTag],
    default_commit: Optional[str] = None,
) -> ResolvedTarget:
    """Pick the commit satisfying a constraint.

    The result depends only on the arguments: the same tag set and
    constraint always produce the same target.

    Args:
        constraint: Parsed version constraint
        tags: Candidate tags in any order
        default_commit: Tip of the default branch, used by ``Latest`` when
            the repository has no semver tags

    Returns:
        The resolved target commit and the tag it came from

    Raises:
        NotFoundError: If no tag satisfies the constraint
    """
    if isinstance(constraint, Latest) and not tags:
        if default_commit is None:
            raise NotFoundError(
                "repository has no semver tags and no default branch",
                operation="resolve",
            )
        logger.info(f"No semver tags found, using default branch tip {default_commit[:12]}")
        return ResolvedTarget(commit=default_commit)

    candidates = sort_tags(t for t in tags if constraint.matches(t.version))
    if not candidates:
        raise NotFoundError(
            f"no tag satisfies {constraint} among {len(tags)} semver tags",
            operation="resolve",
        )

    best = candidates[0]
    logger.debug(f"Resolved {constraint} to {best.name} ({best.commit})")
    return ResolvedTarget(commit=best.commit, tag=best.name)
