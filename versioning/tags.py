"""Enumerate and order the semantic version tags of a repository."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import pygit2
from pydantic import BaseModel, ConfigDict

from engine.errors import RepositoryAccessError, TransportError
from models.versioned_tag import VersionedTag
from versioning.constraint import parse_version

logger = logging.getLogger(__name__)

TAG_PREFIX = "refs/tags/"
PEELED_SUFFIX = "^{}"


class RemoteTagListing(BaseModel):
    """Tags advertised by a remote and the commit its HEAD points at."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tags: List[VersionedTag]
    head_commit: Optional[str] = None


def sort_tags(tags: Iterable[VersionedTag]) -> List[VersionedTag]:
    """Order tags highest precedence first, lexically greatest name on ties.

    Build metadata does not take part in precedence, so ``1.0.0+a`` and
    ``v1.0.0`` tie and fall back to the name.
    """
    return sorted(
        tags,
        key=lambda t: (t.version.precedence_key, t.name),
        reverse=True,
    )


def _versioned(name: str, commit: str) -> Optional[VersionedTag]:
    version = parse_version(name)
    if version is None:
        logger.debug(f"Skipping non-semver tag {name}")
        return None
    return VersionedTag(version=version, name=name, commit=commit)


def list_semver_tags(repo: pygit2.Repository) -> List[VersionedTag]:
    """List the semver tags of a local repository, highest precedence first.

    Args:
        repo: Open repository handle

    Returns:
        Ordered tags; names that are not semantic versions are skipped

    Raises:
        RepositoryAccessError: If the tag references cannot be read
    """
    tags: List[VersionedTag] = []
    try:
        for ref_name in repo.references:
            if not ref_name.startswith(TAG_PREFIX):
                continue
            name = ref_name[len(TAG_PREFIX):]
            try:
                commit = repo.references[ref_name].peel(pygit2.Commit)
            except (ValueError, pygit2.GitError):
                # tags of trees or blobs cannot be checked out
                logger.debug(f"Skipping tag {name} not pointing at a commit")
                continue
            tag = _versioned(name, str(commit.id))
            if tag is not None:
                tags.append(tag)
    except (KeyError, pygit2.GitError) as e:
        raise RepositoryAccessError(
            f"Failed to enumerate tags: {e}", operation="list tags"
        ) from e

    return sort_tags(tags)


get_ordered_semver_tags = list_semver_tags


def list_remote_semver_tags(
    repo: pygit2.Repository,
    url: str,
    callbacks: Optional[pygit2.RemoteCallbacks] = None,
) -> RemoteTagListing:
    """List the semver tags advertised by a remote without fetching.

    An anonymous remote is used so nothing is written to the repository.

    Args:
        repo: Any open repository, used only to host the anonymous remote
        url: Remote address
        callbacks: Credentials and cancellation callbacks

    Returns:
        The ordered tags and the remote HEAD commit

    Raises:
        TransportError: If the remote cannot be listed
    """
    try:
        remote = repo.remotes.create_anonymous(url)
        heads = remote.list_heads(callbacks=callbacks)
    except TransportError as e:
        e.operation = e.operation or "ls-remote"
        raise
    except pygit2.GitError as e:
        raise TransportError(f"Failed to list {url}: {e}", operation="ls-remote") from e

    commits: dict[str, str] = {}
    head_commit: Optional[str] = None
    for head in heads:
        name = head.name or ""
        oid = str(head.oid)
        if name == "HEAD":
            head_commit = oid
            continue
        if not name.startswith(TAG_PREFIX):
            continue
        name = name[len(TAG_PREFIX):]
        if name.endswith(PEELED_SUFFIX):
            commits[name[: -len(PEELED_SUFFIX)]] = oid
        else:
            commits.setdefault(name, oid)

    tags = [t for t in (_versioned(n, c) for n, c in commits.items()) if t is not None]
    logger.debug(f"Remote {url} advertises {len(tags)} semver tags")
    return RemoteTagListing(tags=sort_tags(tags), head_commit=head_commit)
