"""Queries against the places a release can already exist."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from .config import AUR_RPC_URL, GITHUB_API_URL, REQUEST_TIMEOUT
from .errors import InvalidVersion, SourceUnavailable
from .version import Version, parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseRecord:
    """A published version and where it lives (tag, URL, AUR version)."""

    version: Version
    artifact_ref: str


def is_released(version: Version, existing: Iterable[Version]) -> bool:
    """Check membership by (major, minor, patch) only."""
    return version in set(existing)


class ReleaseQuery(Protocol):
    """A store that can list which versions have been published."""

    def list_published_versions(self) -> set[Version]:
        """Return every published version."""
        ...


def unique_by_version(records: Iterable[ReleaseRecord]) -> list[ReleaseRecord]:
    """Keep the first record seen for each version."""
    seen: dict[Version, ReleaseRecord] = {}
    for record in records:
        seen.setdefault(record.version, record)
    return list(seen.values())


class GitHubReleaseQuery:
    """List versions released on a GitHub repository."""

    PER_PAGE = 100

    def __init__(self, repo: str, token: str | None = None) -> None:
        """Initialize the query.

        Args:
            repo: Repository in owner/name form
            token: Optional API token (raises the rate limit, sees drafts)

        """
        self.repo = repo
        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/vnd.github+json'
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _fetch_releases(self) -> list[dict[str, Any]]:
        url = f'{GITHUB_API_URL}/repos/{self.repo}/releases'
        releases: list[dict[str, Any]] = []
        page = 1
        try:
            while True:
                response = self.session.get(
                    url,
                    params={'per_page': self.PER_PAGE, 'page': page},
                    timeout=REQUEST_TIMEOUT,
                )
                response.raise_for_status()
                batch = response.json()
                releases.extend(batch)
                if len(batch) < self.PER_PAGE:
                    return releases
                page += 1
        except requests.RequestException as e:
            msg = f'Failed to list releases of {self.repo}: {e}'
            raise SourceUnavailable(msg) from e

    def list_records(self) -> list[ReleaseRecord]:
        """Get a record per released version, keyed by tag name."""
        records = []
        for release in self._fetch_releases():
            tag = release.get('tag_name', '')
            try:
                version = parse_version(tag)
            except InvalidVersion:
                logger.debug('Ignoring release tag %r', tag)
                continue
            records.append(ReleaseRecord(version, tag))
        return unique_by_version(records)

    def list_published_versions(self) -> set[Version]:
        """Get all versions released on GitHub."""
        return {record.version for record in self.list_records()}


class AURReleaseQuery:
    """Report the version currently published on the AUR."""

    def __init__(self, package: str) -> None:
        """Initialize the query for an AUR package name."""
        self.package = package

    def get_record(self) -> ReleaseRecord | None:
        """Get the AUR package's current version, or None if it does not exist."""
        try:
            response = requests.get(AUR_RPC_URL, params={'arg[]': self.package}, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            msg = f'Failed to query AUR for {self.package}: {e}'
            raise SourceUnavailable(msg) from e

        if data.get('type') == 'error':
            msg = f'AUR RPC error: {data.get("error")}'
            raise SourceUnavailable(msg)

        results = data.get('results', [])
        if not results:
            return None

        aur_version = results[0].get('Version', '')
        # pkgver-pkgrel, e.g. 0.13.11-1
        return ReleaseRecord(parse_version(aur_version), aur_version)

    def list_published_versions(self) -> set[Version]:
        """Get the published version as a set (empty if the package is new)."""
        record = self.get_record()
        return {record.version} if record else set()
