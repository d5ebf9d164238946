import re

from packaging.version import InvalidVersion, Version

from cspace_provision.const import (
    CompareResult,
    REGEX_DOTTED_VERSION_PATTERN,
    REGEX_TOOL_VERSION_PATTERN,
    VERSION_COMPONENTS,
)
from cspace_provision.error import VersionParseError


class ToolVersion(Version):
    """A version class for external tools that extends packaging's Version.

    packaging accepts a broad PEP 440 grammar, including pre-release and local
    segments. Tool versions are restricted to one to four non-negative integer
    components separated by dots, e.g. "1.2" or "1.10.3".
    """

    def __init__(self, version: str):
        """Initialize the ToolVersion with a dotted-decimal version string."""
        if not isinstance(version, str) or re.match(REGEX_DOTTED_VERSION_PATTERN, version.strip()) is None:
            raise VersionParseError(f"Invalid version '{version}', expected up to {VERSION_COMPONENTS} numeric parts")
        try:
            super().__init__(version.strip())
        except InvalidVersion as e:
            raise VersionParseError(f"Invalid version '{version}'") from e

    @property
    def padded(self) -> tuple[int, ...]:
        """The release components, padded with trailing zeros to four parts."""
        return tuple(self.release) + (0,) * (VERSION_COMPONENTS - len(self.release))


def as_version(version: str | ToolVersion) -> ToolVersion:
    """Coerce a string to a ToolVersion, passing ToolVersion instances through."""
    if isinstance(version, ToolVersion):
        return version
    return ToolVersion(version)


def extract_version(text: str | None) -> ToolVersion:
    """Extract the first n.n.n version, with an optional fourth part, from free-form tool output.

    :param text: The output of a tool's version flag, e.g. "Docker version 1.0.1, build 990021a".

    :raises VersionParseError: If the text does not contain a three-part dotted version.
    """
    match = re.search(REGEX_TOOL_VERSION_PATTERN, text or "")
    if match is None:
        raise VersionParseError("Could not parse a version from tool output", text=text or "")
    return ToolVersion(match.group(1))


def compare(a: str | ToolVersion, b: str | ToolVersion) -> CompareResult:
    """Compare two versions component-wise after padding both to four parts.

    :param a: The first version, usually the installed one.
    :param b: The second version, usually the required minimum.

    :return: A_WINS if a is higher, B_WINS if b is higher, TIE if they are equal.
    """
    a_parts = as_version(a).padded
    b_parts = as_version(b).padded
    for a_part, b_part in zip(a_parts, b_parts):
        if a_part > b_part:
            return CompareResult.A_WINS
        if a_part < b_part:
            return CompareResult.B_WINS
    return CompareResult.TIE


def meets_minimum(version: str | ToolVersion, minimum: str | ToolVersion) -> bool:
    """Return True if version is equal to or higher than minimum."""
    return compare(version, minimum) != CompareResult.B_WINS
