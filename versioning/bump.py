"""Version successors offered when cutting a release."""
from __future__ import annotations

from typing import List, NamedTuple

import semantic_version


class BumpOption(NamedTuple):
    version: semantic_version.Version
    description: str

    def label(self) -> str:
        return f"{self.version}: {self.description}"


class BumpOptions(NamedTuple):
    patch: semantic_version.Version
    minor: semantic_version.Version
    major: semantic_version.Version

    def choices(self) -> List[BumpOption]:
        return [
            BumpOption(self.patch, "I made backwards-compatible bug fixes"),
            BumpOption(self.minor, "I added functionality in a backwards-compatible manner"),
            BumpOption(self.major, "I made incompatible API changes"),
        ]


INITIAL_VERSIONS: List[BumpOption] = [
    BumpOption(semantic_version.Version("0.0.1"), "Unstable prototype"),
    BumpOption(semantic_version.Version("0.1.0"), "Stable prototype but subject to change"),
    BumpOption(semantic_version.Version("1.0.0"), "Stable release, API won't change"),
]


def bump_options(version: semantic_version.Version) -> BumpOptions:
    """Compute the patch, minor and major successors of a version.

    A pre-release patch successor is the release it precedes; minor and major
    successors reset the lower components to zero.
    """
    if version.prerelease:
        patch = semantic_version.Version(major=version.major, minor=version.minor, patch=version.patch)
    else:
        patch = semantic_version.Version(major=version.major, minor=version.minor, patch=version.patch + 1)
    return BumpOptions(
        patch=patch,
        minor=semantic_version.Version(major=version.major, minor=version.minor + 1, patch=0),
        major=semantic_version.Version(major=version.major + 1, minor=0, patch=0),
    )
