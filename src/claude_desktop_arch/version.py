"""Version parsing and upstream version probing."""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from .errors import InvalidVersion

logger = logging.getLogger(__name__)

# A dotted triple not glued to a preceding number or dot, and not followed by a
# fourth numeric component (1.2.3.4 is rejected rather than read as 1.2.3).
VERSION_PATTERN = re.compile(r'(?<![\d.])(\d+)\.(\d+)\.(\d+)(?!\.?\d)', re.ASCII)

# Anything that looks like the start of a triple, well-formed or not
_TRIPLE_CANDIDATE = re.compile(r'\d+\.\d+\.\d+', re.ASCII)


@dataclass(frozen=True, order=True)
class Version:
    """Semantic version triple, ordered by (major, minor, patch)."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        """Reject negative components."""
        if min(self.major, self.minor, self.patch) < 0:
            msg = f'Version components must be non-negative: {self.major}.{self.minor}.{self.patch}'
            raise InvalidVersion(msg)

    def __str__(self) -> str:
        """Render as X.Y.Z."""
        return f'{self.major}.{self.minor}.{self.patch}'

    @property
    def tag(self) -> str:
        """Git tag used for GitHub releases."""
        return f'v{self}'


def parse_version(raw: str) -> Version:
    """Extract the first version triple from a filename, URL or tag.

    Build qualifiers after the triple (``-full``, ``-arm64-full``) and package
    revisions (``-1``) are ignored.

    Args:
        raw: String embedding a version, e.g. ``AnthropicClaude-0.13.11-full.nupkg``

    Returns:
        Parsed Version

    Raises:
        InvalidVersion: If the string holds no triple, or its first triple is malformed

    """
    candidate = _TRIPLE_CANDIDATE.search(raw)
    if candidate is None:
        msg = f'No version found in {raw!r}'
        raise InvalidVersion(msg)

    match = VERSION_PATTERN.search(raw)
    if match is None or match.start() != candidate.start():
        msg = f'Malformed version in {raw!r}'
        raise InvalidVersion(msg)

    major, minor, patch = (int(part) for part in match.groups())
    return Version(major, minor, patch)


class VersionSource(Protocol):
    """Something that can report a string embedding the latest upstream version."""

    def fetch_latest_version_string(self) -> str:
        """Return the raw string (filename, URL, page content)."""
        ...


def probe(source: VersionSource) -> Version:
    """Fetch the latest version string from a source and parse it.

    SourceUnavailable raised by the source propagates unchanged.
    """
    raw = source.fetch_latest_version_string()
    logger.debug('Version source returned %r', raw)
    version = parse_version(raw)
    logger.info('Detected upstream version %s', version)
    return version
