"""Interactive release workflow for package authors.

The workflow is a fixed sequence of steps: read the repository, ask for a
version, ask whether to publish, create the tag, then push and publish.
Every answer is validated before the next step runs.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol
from urllib.parse import urlparse

import pygit2
import semantic_version
from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.prompt import Confirm, IntPrompt

from engine.errors import ReleaseError, TransportError
from engine.transport import CallbacksFactory, callbacks_factory
from release.github import GitHubReleasePublisher
from versioning.bump import INITIAL_VERSIONS, BumpOption, bump_options
from versioning.tags import TAG_PREFIX, get_ordered_semver_tags

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    def select(self, message: str, options: List[str]) -> int:
        """Return the index of the chosen option."""

    def confirm(self, message: str, default: bool = False) -> bool:
        ...


class ConsolePrompter:
    """Prompter reading answers from the terminal."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def select(self, message: str, options: List[str]) -> int:
        self.console.print(f"[bold]{message}[/bold]")
        for number, option in enumerate(options, start=1):
            self.console.print(f"  {number}) {option}")
        choice = IntPrompt.ask(
            "Choice",
            choices=[str(n) for n in range(1, len(options) + 1)],
            console=self.console,
        )
        return choice - 1

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=self.console)


class ReleaseResult(BaseModel):
    """Outcome of a release run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    version: semantic_version.Version
    commit: str
    pushed: bool = False
    release_url: Optional[str] = None


def parse_owner_repo(remote_url: str) -> tuple[str, str]:
    """Extract owner and repository from an HTTPS or scp-style remote URL."""
    if "://" in remote_url:
        path = urlparse(remote_url).path
    else:
        path = remote_url.split(":", 1)[-1]
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2:
        raise ReleaseError(f"cannot derive owner/repository from {remote_url}", operation="release")
    owner, repo = parts[-2], parts[-1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


class ReleaseWizard:
    """Bump, tag, push and publish a new version of a package."""

    def __init__(
        self,
        repo_path: str | Path,
        prompter: Prompter,
        publisher: Optional[GitHubReleasePublisher] = None,
        callbacks: Optional[CallbacksFactory] = None,
        remote_name: str = "origin",
    ) -> None:
        self.repo_path = Path(repo_path)
        self.prompter = prompter
        self.publisher = publisher
        self.callbacks = callbacks or callbacks_factory()
        self.remote_name = remote_name

    def _open(self) -> pygit2.Repository:
        try:
            return pygit2.Repository(str(self.repo_path))
        except pygit2.GitError as e:
            raise ReleaseError(
                f"failed to read {self.repo_path} as git repository: {e}", operation="release"
            ) from e

    def version_choices(self, repo: pygit2.Repository) -> List[BumpOption]:
        """Successors of the highest tag, or initial versions for an untagged repo."""
        tags = get_ordered_semver_tags(repo)
        if not tags:
            return list(INITIAL_VERSIONS)
        latest = tags[0]
        logger.info(f"Latest version: {latest.name}")
        return bump_options(latest.version).choices()

    def ask_version(self, choices: List[BumpOption], first_release: bool) -> semantic_version.Version:
        message = "New Project Version" if first_release else "Select Version Bump"
        index = self.prompter.select(message, [c.label() for c in choices])
        if not 0 <= index < len(choices):
            raise ReleaseError(f"invalid choice {index}", operation="release")
        return choices[index].version

    def create_tag(self, repo: pygit2.Repository, version: semantic_version.Version, commit: pygit2.Oid) -> str:
        ref_name = f"{TAG_PREFIX}{version}"
        if ref_name in repo.references:
            raise ReleaseError(f"tag {version} already exists", operation="create tag")
        repo.references.create(ref_name, commit)
        logger.info(f"Created tag {version} at {commit}")
        return ref_name

    def push_tag(self, repo: pygit2.Repository, ref_name: str) -> None:
        logger.info(f"Pushing {ref_name} to {self.remote_name}")
        try:
            remote = repo.remotes[self.remote_name]
            remote.push([f"{ref_name}:{ref_name}"], callbacks=self.callbacks())
        except KeyError as e:
            raise ReleaseError(f"no remote named {self.remote_name}", operation="push") from e
        except TransportError as e:
            e.operation = e.operation or "push"
            raise
        except pygit2.GitError as e:
            raise TransportError(f"Failed to push {ref_name}: {e}", operation="push") from e

    def run(self) -> ReleaseResult:
        """Run the workflow.

        Returns:
            The created version, the tagged commit and publishing details

        Raises:
            ReleaseError: If the repository or an answer is unusable
            TransportError: If pushing or publishing fails
        """
        repo = self._open()
        if repo.head_is_unborn:
            raise ReleaseError("repository has no commits to release", operation="release")
        head = repo.head.peel(pygit2.Commit).id

        choices = self.version_choices(repo)
        version = self.ask_version(choices, first_release=choices == INITIAL_VERSIONS)
        publish = self.prompter.confirm(
            "Create GitHub Release? (requires a GitHub token)", default=False
        )
        if publish and self.publisher is None:
            raise ReleaseError("no release publisher configured", operation="release")

        logger.info(f"New version: {version}")
        ref_name = self.create_tag(repo, version, head)
        result = ReleaseResult(version=version, commit=str(head))
        if not publish:
            return result

        self.push_tag(repo, ref_name)
        result.pushed = True

        owner, name = parse_owner_repo(repo.remotes[self.remote_name].url)
        release = self.publisher.publish(owner, name, str(version))
        result.release_url = release.url
        logger.info(f"Released at: https://github.com/{owner}/{name}/releases")
        return result
