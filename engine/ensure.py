"""Ensure vendored dependencies are checked out at their resolved versions."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import anyio
import anyio.to_thread
import pygit2
from pydantic import BaseModel, ConfigDict

from engine.config import EnsureSettings
from engine.errors import CorruptedWorkingCopyError, EnsureError
from engine.locks import PathLocks, default_locks
from engine.repo_state import RepositoryStateManager, WorkingCopyState
from engine.transport import CallbacksFactory, callbacks_factory
from models.dependency import Dependency
from models.versioned_tag import ResolvedTarget
from versioning.resolver import resolve
from versioning.tags import list_remote_semver_tags, list_semver_tags

logger = logging.getLogger(__name__)


class EnsureResult(BaseModel):
    """Outcome of ensuring a single dependency."""

    dependency: Dependency
    path: Path
    target: ResolvedTarget
    changed: bool


class EnsureOutcome(BaseModel):
    """Result or error for one dependency of a batch."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dependency: Dependency
    result: Optional[EnsureResult] = None
    error: Optional[EnsureError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EnsureEngine:
    """Guarantees a vendored working copy sits at its constraint's commit."""

    def __init__(
        self,
        settings: Optional[EnsureSettings] = None,
        locks: Optional[PathLocks] = None,
        state_manager: Callable[[CallbacksFactory], RepositoryStateManager] = RepositoryStateManager,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Remote host, credentials and timeouts. Read from the
                environment when omitted.
            locks: Path lock registry, shared process wide by default
            state_manager: Builds the state manager for one call from its
                remote callbacks factory
        """
        self.settings = settings or EnsureSettings()
        self.locks = locks or default_locks
        self.state_manager = state_manager

        if not self.settings.github_token:
            logger.warning("No GitHub token provided, only public repositories can be ensured")

    def ensure_package(
        self,
        vendor_dir: str | Path,
        dependency: Dependency,
        cancel: Optional[threading.Event] = None,
    ) -> EnsureResult:
        """Make ``{vendor_dir}/{repo}`` hold the commit the dependency resolves to.

        Calling this again with the same inputs and unchanged remote performs
        no mutating git operation and reports ``changed=False``. A failed call
        is safe to repeat.

        Args:
            vendor_dir: Directory holding all vendored dependencies
            dependency: The package and its version constraint
            cancel: Event aborting in-flight network operations when set

        Returns:
            The resolved target and whether the working copy changed

        Raises:
            EnsureError: Any component failure, annotated with the dependency
        """
        try:
            return self._ensure(Path(vendor_dir), dependency, cancel)
        except EnsureError as e:
            raise e.annotate(str(dependency))

    def _ensure(
        self,
        vendor_dir: Path,
        dependency: Dependency,
        cancel: Optional[threading.Event],
    ) -> EnsureResult:
        constraint = dependency.constraint()
        path = dependency.local_path(vendor_dir)
        url = dependency.remote_url(self.settings.git_host, self.settings.git_scheme)
        callbacks = callbacks_factory(
            token=self.settings.github_token,
            cancel=cancel,
            timeout=self.settings.network_timeout,
        )
        manager = self.state_manager(callbacks)

        with self.locks.hold(path):
            state = manager.inspect(path)

            if state is WorkingCopyState.CORRUPTED:
                raise CorruptedWorkingCopyError(
                    f"{path} exists but is not a usable git working copy",
                    operation="inspect",
                )
            if state is WorkingCopyState.ABSENT:
                created = not path.exists()
                repo = manager.clone(url, path)
                try:
                    default_commit = _head_or_none(manager, repo)
                    target = resolve(constraint, list_semver_tags(repo), default_commit)
                    if default_commit != target.commit:
                        manager.checkout(repo, target.commit)
                except Exception:
                    # an unresolved clone would read as corrupted on the next call
                    manager.discard_clone(path, created)
                    raise
                changed = True
            else:
                repo = manager.open(path)
                listing = list_remote_semver_tags(repo, url, callbacks())
                target = resolve(constraint, listing.tags, listing.head_commit)
                changed = manager.reconcile(path, url, target)

        logger.info(
            f"Ensured {dependency} at {target.describe()}",
            extra={"dependency": str(dependency), "commit": target.commit, "changed": changed},
        )
        return EnsureResult(dependency=dependency, path=path, target=target, changed=changed)

    async def ensure_packages(
        self,
        vendor_dir: str | Path,
        dependencies: Sequence[Dependency],
        max_workers: int = 4,
    ) -> List[EnsureOutcome]:
        """Ensure several dependencies concurrently.

        Each dependency runs in a worker thread; a failure is recorded in its
        outcome and never affects the others.

        Args:
            vendor_dir: Directory holding all vendored dependencies
            dependencies: Packages to ensure
            max_workers: Maximum number of concurrent ensures

        Returns:
            One outcome per dependency, in input order
        """
        outcomes: List[Optional[EnsureOutcome]] = [None] * len(dependencies)
        limiter = anyio.CapacityLimiter(max_workers)

        async def _run(index: int, dependency: Dependency) -> None:
            try:
                result = await anyio.to_thread.run_sync(
                    self.ensure_package, vendor_dir, dependency, limiter=limiter
                )
                outcomes[index] = EnsureOutcome(dependency=dependency, result=result)
            except EnsureError as e:
                logger.error(f"Failed to ensure {dependency}: {e}")
                outcomes[index] = EnsureOutcome(dependency=dependency, error=e)
            except Exception as e:
                logger.exception(f"Unexpected failure ensuring {dependency}")
                error = EnsureError(f"unexpected failure: {e}", dependency=str(dependency))
                error.__cause__ = e
                outcomes[index] = EnsureOutcome(dependency=dependency, error=error)

        logger.info(f"Ensuring {len(dependencies)} dependencies in {vendor_dir}")
        async with anyio.create_task_group() as tg:
            for index, dependency in enumerate(dependencies):
                tg.start_soon(_run, index, dependency, name=f"ensure-{dependency}")

        return [o for o in outcomes if o is not None]


def _head_or_none(manager: RepositoryStateManager, repo: pygit2.Repository) -> Optional[str]:
    if repo.head_is_unborn:
        return None
    return manager.head_commit(repo)
