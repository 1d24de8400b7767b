"""Shared fixtures building local git repositories that act as remotes."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import pygit2
import pytest
from pygit2.enums import ObjectType

from engine.config import EnsureSettings
from engine.ensure import EnsureEngine
from engine.locks import PathLocks

SIGNATURE = pygit2.Signature("Test User", "test@example.com")


def commit_file(repo: pygit2.Repository, name: str, content: str, message: str) -> pygit2.Oid:
    """Write a file and commit it on the current branch."""
    path = Path(repo.workdir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    index = repo.index
    index.add(name)
    index.write()
    tree_id = index.write_tree()
    parents = [] if repo.head_is_unborn else [repo.head.target]
    return repo.create_commit("HEAD", SIGNATURE, SIGNATURE, message, tree_id, parents)


def tag_commit(repo: pygit2.Repository, name: str, oid: pygit2.Oid, annotated: bool = False) -> None:
    if annotated:
        repo.create_tag(name, oid, ObjectType.COMMIT, SIGNATURE, f"Release {name}")
    else:
        repo.references.create(f"refs/tags/{name}", oid)


@dataclass
class RemoteFixture:
    """A repository standing in for a hosted package.

    Attributes:
        repo: Handle on the remote repository
        host: Value for ``EnsureSettings.git_host`` so file URLs resolve here
        commits: Tag name (or "tip") to commit hex
    """

    repo: pygit2.Repository
    host: str
    commits: Dict[str, str] = field(default_factory=dict)

    def add_release(self, tag: str, annotated: bool = False) -> str:
        oid = commit_file(self.repo, "VERSION", tag, f"Release {tag}")
        tag_commit(self.repo, tag, oid, annotated)
        self.commits[tag] = str(oid)
        self.commits["tip"] = str(oid)
        return str(oid)


@pytest.fixture
def sif_remote(tmp_path: Path) -> RemoteFixture:
    """Create a ``Southclaws/SIF`` remote with several release lines.

    Tags: 1.3.0, 1.3.1, 1.4.0, 1.4.1 (annotated), 1.5.0-rc.1, 1.5.0, plus a
    non-semver ``nightly`` tag. The default branch carries one untagged
    commit past 1.5.0.
    """
    host = tmp_path / "remotes"
    repo = pygit2.init_repository(str(host / "Southclaws" / "SIF"))
    remote = RemoteFixture(repo=repo, host=str(host))

    commit_file(repo, "README.md", "SIF", "Initial commit")
    remote.add_release("1.3.0")
    remote.add_release("1.3.1")
    remote.add_release("1.4.0")
    remote.add_release("1.4.1", annotated=True)
    remote.add_release("1.5.0-rc.1")
    remote.add_release("1.5.0")
    tip = commit_file(repo, "CHANGELOG.md", "unreleased", "Work in progress")
    tag_commit(repo, "nightly", tip)
    remote.commits["tip"] = str(tip)
    return remote


@pytest.fixture
def untagged_remote(tmp_path: Path) -> RemoteFixture:
    """Create a ``Southclaws/bare-bones`` remote without any tags."""
    host = tmp_path / "remotes"
    repo = pygit2.init_repository(str(host / "Southclaws" / "bare-bones"))
    remote = RemoteFixture(repo=repo, host=str(host))
    remote.commits["tip"] = str(commit_file(repo, "main.pwn", "main() {}", "Initial commit"))
    return remote


@pytest.fixture
def vendor_dir(tmp_path: Path) -> Path:
    path = tmp_path / "deps"
    path.mkdir()
    return path


@pytest.fixture
def settings(sif_remote: RemoteFixture) -> EnsureSettings:
    return EnsureSettings(git_host=sif_remote.host, git_scheme="file", github_token=None)


@pytest.fixture
def engine(settings: EnsureSettings) -> EnsureEngine:
    return EnsureEngine(settings, locks=PathLocks())
