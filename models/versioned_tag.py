"""Models for semver tags and resolved checkout targets."""
from __future__ import annotations

from typing import Optional

import semantic_version
from pydantic import ConfigDict
from pydantic.dataclasses import dataclass


@dataclass(frozen=True, config=ConfigDict(arbitrary_types_allowed=True))
class VersionedTag:
    """A tag reference whose name parses as a semantic version.

    Attributes:
        version: Parsed semantic version
        name: Tag name without the refs/tags/ prefix
        commit: Hex id of the commit the tag points at
    """

    version: semantic_version.Version
    name: str
    commit: str


@dataclass(frozen=True)
class ResolvedTarget:
    """The commit a working copy must be checked out at.

    Attributes:
        commit: Hex id of the target commit
        tag: Originating tag name, None when falling back to the default branch
    """

    commit: str
    tag: Optional[str] = None

    def describe(self) -> str:
        if self.tag is None:
            return f"default branch ({self.commit[:12]})"
        return f"{self.tag} ({self.commit[:12]})"
