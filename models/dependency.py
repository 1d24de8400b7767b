"""Dependency model identifying a git-hosted package."""
from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic.dataclasses import dataclass

from versioning.constraint import Constraint, parse_constraint


@dataclass(frozen=True)
class Dependency:
    """A remote package pinned by an optional version constraint.

    Attributes:
        owner: Account or organisation owning the repository
        repo: Repository name, also used as the vendored directory name
        version: Constraint string, empty for the latest version
    """

    owner: str
    repo: str
    version: str = ""

    @field_validator("owner", "repo")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value or "/" in value or value in (".", ".."):
            raise ValueError(f"invalid repository component: {value!r}")
        return value

    def constraint(self) -> Constraint:
        """Parse the version string into a constraint variant."""
        return parse_constraint(self.version)

    def local_path(self, vendor_dir: str | Path) -> Path:
        return Path(vendor_dir) / self.repo

    def remote_url(self, host: str = "github.com", scheme: str = "https") -> str:
        return f"{scheme}://{host}/{self.owner}/{self.repo}"

    def __str__(self) -> str:
        if self.version:
            return f"{self.owner}/{self.repo}:{self.version}"
        return f"{self.owner}/{self.repo}"
