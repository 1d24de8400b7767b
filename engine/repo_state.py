"""Reconcile a local working copy to a target commit using pygit2."""
from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Optional

import pygit2
from pygit2.enums import CheckoutStrategy, RepositoryOpenFlag

from engine.errors import (
    CorruptedWorkingCopyError,
    RepositoryAccessError,
    TransportError,
)
from engine.transport import CallbacksFactory, callbacks_factory
from models.versioned_tag import ResolvedTarget

logger = logging.getLogger(__name__)

FETCH_REFSPECS = [
    "+refs/heads/*:refs/remotes/origin/*",
    "+refs/tags/*:refs/tags/*",
]


def _create_origin(repo: pygit2.Repository, name: str, url: str) -> pygit2.Remote:
    # clone every tag, not only those reachable from branches
    repo.remotes.create(name, url, FETCH_REFSPECS[0])
    repo.remotes.add_fetch(name, FETCH_REFSPECS[1])
    return repo.remotes[name]


class WorkingCopyState(str, Enum):
    """State of a local path before reconciliation."""

    ABSENT = "absent"
    PRESENT = "present"
    CORRUPTED = "corrupted"


class RepositoryStateManager:
    """Clone, fetch and check out working copies.

    Checkouts are forced and detached: any local modification to tracked
    files in the working copy is discarded so the result depends only on the
    target commit.
    """

    def __init__(self, callbacks: Optional[CallbacksFactory] = None) -> None:
        """Initialize the manager.

        Args:
            callbacks: Factory returning fresh remote callbacks for each
                network operation. Defaults to anonymous access.
        """
        self.callbacks = callbacks or callbacks_factory()

    @staticmethod
    def open(path: Path) -> pygit2.Repository:
        """Open the repository at exactly ``path``, never a parent directory."""
        try:
            return pygit2.Repository(str(path), RepositoryOpenFlag.NO_SEARCH)
        except pygit2.GitError as e:
            raise CorruptedWorkingCopyError(
                f"{path} is not a git working copy: {e}", operation="open"
            ) from e

    @staticmethod
    def head_commit(repo: pygit2.Repository) -> str:
        try:
            return str(repo.head.peel(pygit2.Commit).id)
        except (pygit2.GitError, ValueError) as e:
            raise CorruptedWorkingCopyError(
                f"HEAD of {repo.workdir} does not resolve to a commit: {e}",
                operation="read HEAD",
            ) from e

    def inspect(self, path: Path) -> WorkingCopyState:
        """Classify the local path.

        An empty directory counts as absent so it can be cloned into.
        """
        path = Path(path)
        if not path.exists():
            return WorkingCopyState.ABSENT
        if path.is_dir() and not any(path.iterdir()):
            return WorkingCopyState.ABSENT
        try:
            repo = self.open(path)
            if repo.is_bare:
                return WorkingCopyState.CORRUPTED
            self.head_commit(repo)
        except CorruptedWorkingCopyError as e:
            logger.debug(f"Working copy at {path} is unusable: {e}")
            return WorkingCopyState.CORRUPTED
        return WorkingCopyState.PRESENT

    def clone(self, url: str, path: Path) -> pygit2.Repository:
        """Clone ``url`` into ``path``.

        On failure whatever the clone wrote is removed again, leaving the
        path absent and the operation safe to retry.

        Raises:
            TransportError: If the clone fails or is cancelled
            RepositoryAccessError: If the parent directory cannot be created
        """
        path = Path(path)
        created = not path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RepositoryAccessError(
                f"Failed to create {path.parent}: {e}", operation="clone"
            ) from e

        logger.info(f"Cloning {url} to {path}")
        try:
            return pygit2.clone_repository(
                url, str(path), remote=_create_origin, callbacks=self.callbacks()
            )
        except TransportError as e:
            self.discard_clone(path, created)
            e.operation = e.operation or "clone"
            raise
        except pygit2.GitError as e:
            self.discard_clone(path, created)
            raise TransportError(f"Failed to clone {url}: {e}", operation="clone") from e

    @staticmethod
    def discard_clone(path: Path, created: bool) -> None:
        """Remove what a clone wrote to ``path``.

        Args:
            path: Clone destination
            created: Whether the clone created ``path`` itself. An empty
                directory that existed before is emptied but kept.

        Raises:
            RepositoryAccessError: If the clone cannot be removed
        """
        path = Path(path)
        try:
            if not path.exists():
                return
            if created:
                shutil.rmtree(path)
                return
            for child in path.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink(missing_ok=True)
        except OSError as e:
            raise RepositoryAccessError(
                f"Failed to remove clone at {path}: {e}", operation="discard clone"
            ) from e
        logger.info(f"Discarded clone at {path}")

    def fetch(self, repo: pygit2.Repository, url: str) -> None:
        """Fetch all branches and tags of ``url`` into ``repo``.

        Raises:
            TransportError: If the fetch fails or is cancelled
        """
        logger.info(f"Fetching {url} into {repo.workdir}")
        try:
            remote = repo.remotes.create_anonymous(url)
            remote.fetch(refspecs=FETCH_REFSPECS, callbacks=self.callbacks())
        except TransportError as e:
            e.operation = e.operation or "fetch"
            raise
        except pygit2.GitError as e:
            raise TransportError(f"Failed to fetch {url}: {e}", operation="fetch") from e

    @staticmethod
    def _lookup_commit(repo: pygit2.Repository, commit: str) -> Optional[pygit2.Commit]:
        try:
            obj = repo.get(commit)
        except (ValueError, pygit2.GitError):
            return None
        if obj is None or not isinstance(obj, pygit2.Commit):
            return None
        return obj

    def checkout(self, repo: pygit2.Repository, commit: str) -> None:
        """Force a detached checkout of ``commit``.

        Raises:
            RepositoryAccessError: If the commit is not in the repository
        """
        target = self._lookup_commit(repo, commit)
        if target is None:
            raise RepositoryAccessError(
                f"commit {commit} is not available in {repo.workdir}",
                operation="checkout",
            )
        try:
            repo.checkout_tree(target, strategy=CheckoutStrategy.FORCE)
            repo.set_head(target.id)
        except pygit2.GitError as e:
            raise RepositoryAccessError(
                f"Failed to check out {commit}: {e}", operation="checkout"
            ) from e
        logger.info(f"Checked out {commit} in {repo.workdir}")

    def reconcile(self, path: Path, url: str, target: ResolvedTarget) -> bool:
        """Bring the working copy at ``path`` to ``target``.

        Args:
            path: Local working copy location
            url: Remote address used for cloning and fetching
            target: Commit the working copy must end up at

        Returns:
            True if anything on disk changed, False if already at target

        Raises:
            CorruptedWorkingCopyError: If the path is not a usable working copy
            TransportError: If a clone or fetch fails
            RepositoryAccessError: If the target commit cannot be obtained
        """
        path = Path(path)
        state = self.inspect(path)

        if state is WorkingCopyState.CORRUPTED:
            raise CorruptedWorkingCopyError(
                f"{path} exists but is not a usable git working copy",
                operation="reconcile",
            )

        if state is WorkingCopyState.ABSENT:
            repo = self.clone(url, path)
            if self.head_commit(repo) != target.commit:
                self.checkout(repo, target.commit)
            return True

        repo = self.open(path)
        current = self.head_commit(repo)
        if current == target.commit:
            logger.debug(f"{path} already at {target.describe()}")
            return False

        if self._lookup_commit(repo, target.commit) is None:
            self.fetch(repo, url)
        logger.info(
            f"Moving {path} from {current[:12]} to {target.describe()}",
            extra={"path": str(path), "from": current, "to": target.commit},
        )
        self.checkout(repo, target.commit)
        return True
