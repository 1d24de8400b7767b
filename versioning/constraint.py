"""Version constraint variants and the parser that produces them."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

import semantic_version

from engine.errors import ConstraintParseError

_WILDCARDS = ("x", "X", "*")
_MAJOR_MINOR_RANGE = re.compile(r"^v?(\d+)\.(\d+)\.[xX*]$")
_MAJOR_RANGE = re.compile(r"^v?(\d+)\.[xX*]$")


def parse_version(name: str) -> semantic_version.Version | None:
    """Parse a tag name as a strict semantic version, None if it is not one."""
    if name.startswith("v"):
        name = name[1:]
    try:
        return semantic_version.Version(name)
    except ValueError:
        return None


@dataclass(frozen=True)
class Latest:
    """Highest-precedence tag, or the default branch when there are no tags."""

    def matches(self, version: semantic_version.Version) -> bool:
        return True

    def __str__(self) -> str:
        return "latest"


@dataclass(frozen=True)
class Exact:
    version: semantic_version.Version

    def matches(self, version: semantic_version.Version) -> bool:
        # build metadata does not take part in the comparison
        return (
            version.major == self.version.major
            and version.minor == self.version.minor
            and version.patch == self.version.patch
            and tuple(version.prerelease) == tuple(self.version.prerelease)
        )

    def __str__(self) -> str:
        return str(self.version)


@dataclass(frozen=True)
class XRangeMajorMinor:
    """Matches every tag of one major.minor line, written ``X.Y.x``."""

    major: int
    minor: int

    def matches(self, version: semantic_version.Version) -> bool:
        return version.major == self.major and version.minor == self.minor

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.x"


@dataclass(frozen=True)
class XRangeMajor:
    """Matches every tag of one major line, written ``X.x``."""

    major: int

    def matches(self, version: semantic_version.Version) -> bool:
        return version.major == self.major

    def __str__(self) -> str:
        return f"{self.major}.x"


Constraint = Union[Latest, Exact, XRangeMajorMinor, XRangeMajor]


def parse_constraint(raw: str) -> Constraint:
    """Parse a dependency version string.

    Args:
        raw: Empty for latest, ``X.Y.Z[-pre]`` for an exact version,
            ``X.Y.x`` or ``X.x`` for an x-range

    Returns:
        The matching constraint variant

    Raises:
        ConstraintParseError: If the string matches none of the forms
    """
    text = raw.strip()
    if not text:
        return Latest()

    match = _MAJOR_MINOR_RANGE.match(text)
    if match:
        return XRangeMajorMinor(int(match.group(1)), int(match.group(2)))

    match = _MAJOR_RANGE.match(text)
    if match:
        return XRangeMajor(int(match.group(1)))

    core = re.split(r"[-+]", text, maxsplit=1)[0]
    if any(w in core for w in _WILDCARDS):
        raise ConstraintParseError(raw, "unsupported wildcard position")

    version = parse_version(text)
    if version is None:
        raise ConstraintParseError(raw)
    return Exact(version)
