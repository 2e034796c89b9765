"""Version sources: places the latest upstream version can be read from."""

import logging
import platform
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from playwright.sync_api import Error as PlaywrightError

from .config import CACHE_DIR, CLAUDE_DOWNLOADS, CLAUDE_REDIRECT_URL, PACKAGE_GLOB
from .downloader import get_cached_installer, resolve_cloudflare_url
from .errors import SourceUnavailable
from .version import VersionSource

NUPKG_PATTERN = re.compile(r'AnthropicClaude-[^/\\]+\.nupkg$')


@dataclass(frozen=True)
class Architecture:
    """Host architecture and the matching Windows installer."""

    machine: str
    host_arch: str
    download_url: str
    installer_filename: str


def detect_architecture(machine: str | None = None) -> Architecture:
    """Map `uname -m` to an installer download.

    Raises:
        RuntimeError: If the architecture has no upstream installer

    """
    machine = machine or platform.machine()
    if machine not in CLAUDE_DOWNLOADS:
        msg = f'Unsupported architecture: {machine}'
        raise RuntimeError(msg)
    host_arch, url, filename = CLAUDE_DOWNLOADS[machine]
    return Architecture(machine, host_arch, url, filename)


def find_nupkg_name(listing: str) -> str:
    """Find the nupkg entry in `7z l -slt` output."""
    for line in listing.splitlines():
        if line.startswith('Path = '):
            path = line.removeprefix('Path = ').strip()
            if NUPKG_PATTERN.search(path):
                return Path(path.replace('\\', '/')).name
    msg = 'No AnthropicClaude nupkg found in installer'
    raise RuntimeError(msg)


class InstallerVersionSource:
    """Read the version from the nupkg name inside the Windows installer."""

    def __init__(
        self,
        arch: Architecture | None = None,
        cache_dir: Path = CACHE_DIR,
        *,
        refresh: bool = True,
    ) -> None:
        """Initialize the source.

        Args:
            arch: Target architecture (host architecture if omitted)
            cache_dir: Where the installer is downloaded to
            refresh: Re-download even if a cached installer exists

        """
        self.arch = arch or detect_architecture()
        self.cache_dir = cache_dir
        self.refresh = refresh
        self.logger = logging.getLogger(__name__)

    @property
    def installer_path(self) -> Path:
        """Cached installer location."""
        return self.cache_dir / self.arch.installer_filename

    def fetch_latest_version_string(self) -> str:
        """Download the installer and return its nupkg filename."""
        try:
            installer = get_cached_installer(self.arch.download_url, self.installer_path, force=self.refresh)
            result = subprocess.run(
                ['7z', 'l', '-slt', str(installer)],
                check=True,
                capture_output=True,
                text=True,
            )
            name = find_nupkg_name(result.stdout)
        except (requests.RequestException, subprocess.CalledProcessError, OSError, RuntimeError) as e:
            msg = f'Could not read installer version: {e}'
            raise SourceUnavailable(msg) from e

        self.logger.info('Found %s in installer', name)
        return name


class RedirectVersionSource:
    """Read the version from the resolved download URL, without downloading."""

    def __init__(self, url: str = CLAUDE_REDIRECT_URL) -> None:
        """Initialize with the Cloudflare-protected redirect URL."""
        self.url = url

    def fetch_latest_version_string(self) -> str:
        """Resolve the redirect and return the final URL."""
        try:
            return resolve_cloudflare_url(self.url)
        except (PlaywrightError, OSError, RuntimeError) as e:
            msg = f'Could not resolve {self.url}: {e}'
            raise SourceUnavailable(msg) from e


class PackageFileVersionSource:
    """Read the version from an already built package file."""

    def __init__(self, directory: Path) -> None:
        """Initialize with the directory holding built packages."""
        self.directory = directory

    def find_package(self) -> Path:
        """Return the first built package in the directory."""
        packages = sorted(self.directory.glob(PACKAGE_GLOB))
        if not packages:
            msg = f'No package file found in {self.directory}. Build the package first.'
            raise SourceUnavailable(msg)
        return packages[0]

    def fetch_latest_version_string(self) -> str:
        """Return the package filename."""
        return self.find_package().name


class StaticVersionSource:
    """Return a fixed string, e.g. a version passed on the command line."""

    def __init__(self, value: str) -> None:
        """Initialize with the string to report."""
        self.value = value

    def fetch_latest_version_string(self) -> str:
        """Return the configured string."""
        return self.value


def get_version_source(name: str, **kwargs: Any) -> VersionSource:
    """Get a version source by name.

    Args:
        name: One of 'installer', 'redirect', 'package'
        kwargs: Passed to the source constructor

    Returns:
        Version source instance

    """
    sources = {
        'installer': InstallerVersionSource,
        'redirect': RedirectVersionSource,
        'package': PackageFileVersionSource,
    }

    if name not in sources:
        msg = f"Unknown source: {name}. Available: {', '.join(sources.keys())}"
        raise ValueError(msg)

    return sources[name](**kwargs)
