"""Publishers: GitHub Releases and the Arch User Repository."""

import hashlib
import logging
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any, Protocol

import requests

from .config import (
    AUR_PACKAGE_NAME,
    AUR_REPO_URL,
    AUR_SSH_KEYS,
    GIT_USER_EMAIL,
    GIT_USER_NAME,
    GITHUB_API_URL,
    GITHUB_REPO,
    PROJECT_ROOT,
)
from .errors import PublishFailed, SourceUnavailable
from .ledger import AURReleaseQuery
from .templates import render_aur_pkgbuild
from .version import Version

RELEASE_BODY = """\
Claude Desktop {version} for Arch Linux

## Installation

Download the package and install with:
```bash
sudo pacman -U {package_name}
```

## Requirements
- Arch Linux x86_64
- electron
- nodejs
"""

SSH_CONFIG_BLOCK = """
Host aur.archlinux.org
    IdentityFile ~/.ssh/aur
    User aur
"""


class Publisher(Protocol):
    """Something that makes a built package available to users."""

    def publish(self, artifact: Path, version: Version) -> None:
        """Publish the artifact as the given version."""
        ...


def file_sha256(path: Path) -> str:
    """Calculate the SHA256 hex digest of a file."""
    sha256_hash = hashlib.sha256()
    with path.open('rb') as f:
        for byte_block in iter(lambda: f.read(4096), b''):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()


class GitHubReleasePublisher:
    """Create a GitHub release for the version and attach the package."""

    def __init__(self, repo: str = GITHUB_REPO, token: str | None = None) -> None:
        """Initialize the publisher.

        Args:
            repo: Repository in owner/name form
            token: API token with contents:write permission

        """
        self.repo = repo
        self.token = token
        self.logger = logging.getLogger(__name__)

    def _headers(self) -> dict[str, str]:
        return {
            'Accept': 'application/vnd.github+json',
            'Authorization': f'Bearer {self.token}',
        }

    def create_release(self, version: Version, package_name: str) -> dict[str, Any]:
        """Create the release and return the API response."""
        response = requests.post(
            f'{GITHUB_API_URL}/repos/{self.repo}/releases',
            headers=self._headers(),
            json={
                'tag_name': version.tag,
                'name': f'Claude Desktop {version}',
                'body': RELEASE_BODY.format(version=version, package_name=package_name),
                'draft': False,
                'prerelease': False,
            },
            timeout=30,
        )
        response.raise_for_status()
        return response.json()

    def upload_asset(self, release: dict[str, Any], artifact: Path) -> str:
        """Upload the artifact to the release, returning its download URL."""
        # upload_url is a URI template: .../assets{?name,label}
        upload_url = release['upload_url'].split('{', 1)[0]
        headers = {**self._headers(), 'Content-Type': 'application/octet-stream'}
        with artifact.open('rb') as f:
            response = requests.post(
                upload_url,
                headers=headers,
                params={'name': artifact.name},
                data=f,
                timeout=300,
            )
        response.raise_for_status()
        return response.json()['browser_download_url']

    def publish(self, artifact: Path, version: Version) -> None:
        """Create release v<version> and attach the package."""
        if not self.token:
            msg = 'GITHUB_TOKEN is required to publish a GitHub release'
            raise PublishFailed(msg)

        try:
            release = self.create_release(version, artifact.name)
            url = self.upload_asset(release, artifact)
        except (requests.RequestException, KeyError, OSError) as e:
            msg = f'GitHub release {version.tag} failed: {e}'
            raise PublishFailed(msg) from e

        self.logger.info('Released %s: %s', version.tag, url)


class AURPublisher:
    """Push an updated -bin PKGBUILD to the AUR."""

    def __init__(
        self,
        package_name: str = AUR_PACKAGE_NAME,
        repo_url: str = AUR_REPO_URL,
        *,
        work_root: Path = PROJECT_ROOT,
        github_repo: str = GITHUB_REPO,
    ) -> None:
        """Initialize the publisher.

        Args:
            package_name: AUR package name
            repo_url: AUR git remote
            work_root: Directory the AUR checkout is kept in
            github_repo: Repository whose release hosts the package file

        """
        self.package_name = package_name
        self.repo_url = repo_url
        self.repo_dir = work_root / f'aur-{package_name}'
        self.github_repo = github_repo
        self.ssh_dir = Path.home() / '.ssh'
        self.ssh_keys = AUR_SSH_KEYS
        self.logger = logging.getLogger(__name__)

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            ['git', *args],
            cwd=self.repo_dir,
            check=check,
            capture_output=True,
            text=True,
        )

    def check_prerequisites(self) -> None:
        """Require git, makepkg and an SSH key for the AUR."""
        for command in ('git', 'makepkg'):
            if not shutil.which(command):
                msg = f'{command} is not installed'
                raise PublishFailed(msg)

        if not any(key.exists() for key in self.ssh_keys):
            msg = 'No SSH key found for AUR. Please set up AUR SSH access first.'
            raise PublishFailed(msg)

        self.logger.info('Prerequisites check passed')

    def setup_ssh_config(self) -> None:
        """Add an aur.archlinux.org host entry to ~/.ssh/config if missing."""
        config = self.ssh_dir / 'config'
        existing = config.read_text() if config.exists() else ''
        if 'aur.archlinux.org' in existing:
            return

        self.logger.info('Setting up SSH config for AUR...')
        self.ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        with config.open('a') as f:
            f.write(SSH_CONFIG_BLOCK)
        config.chmod(0o600)

    def prepare_repo(self) -> None:
        """Clone the AUR repository, or update the existing checkout."""
        if self.repo_dir.exists():
            self.logger.info('Updating existing AUR repository...')
            result = self._git('pull', 'origin', 'master', check=False)
            if result.returncode != 0:
                self.logger.warning('git pull failed: %s', result.stderr.strip())
            return

        self.logger.info('Cloning AUR repository...')
        result = subprocess.run(
            ['git', 'clone', self.repo_url, str(self.repo_dir)],
            check=False,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            self.logger.warning("Repository doesn't exist on AUR. Creating new repository...")
            self.repo_dir.mkdir(parents=True, exist_ok=True)
            self._git('init')
            self._git('remote', 'add', 'origin', self.repo_url)

    def update_pkgbuild(self, artifact: Path, version: Version) -> None:
        """Write the PKGBUILD for this version and regenerate .SRCINFO."""
        self.logger.info('Updating PKGBUILD with version %s...', version)
        sha256 = file_sha256(artifact) if artifact.exists() else 'SKIP'
        # name-pkgver-pkgrel-arch.pkg.tar.*
        arch = artifact.name.split('.pkg.tar', 1)[0].rsplit('-', 1)[-1]
        pkgbuild = render_aur_pkgbuild(
            str(version),
            artifact.name,
            sha256,
            aur_name=self.package_name,
            arch=arch,
            repo=self.github_repo,
        )
        (self.repo_dir / 'PKGBUILD').write_text(pkgbuild)

        srcinfo = subprocess.run(
            ['makepkg', '--printsrcinfo'],
            cwd=self.repo_dir,
            check=True,
            capture_output=True,
            text=True,
        )
        (self.repo_dir / '.SRCINFO').write_text(srcinfo.stdout)

    def ensure_git_identity(self) -> None:
        """Fall back to a maintainer identity when git has none configured."""
        if not self._git('config', 'user.name', check=False).stdout.strip():
            self.logger.warning('Git user not configured. Using defaults...')
            self._git('config', 'user.name', GIT_USER_NAME)
            self._git('config', 'user.email', GIT_USER_EMAIL)

    def has_changes(self) -> bool:
        """Check whether PKGBUILD or .SRCINFO differ from the last commit."""
        status = self._git('status', '--porcelain', '--', 'PKGBUILD', '.SRCINFO')
        return bool(status.stdout.strip())

    def commit_and_push(self, version: Version) -> bool:
        """Commit and push the updated files.

        Returns:
            False when there was nothing to deploy

        """
        self.ensure_git_identity()
        if not self.has_changes():
            self.logger.info('No changes to deploy')
            return False

        self._git('add', 'PKGBUILD', '.SRCINFO')
        self._git(
            'commit', '-m',
            f'Update to version {version}\n\n'
            '- Automated deployment\n'
            '- Built from upstream Claude Desktop Windows installer',
        )

        self.logger.info('Pushing to AUR...')
        if self._git('push', 'origin', 'master', check=False).returncode != 0:
            # Fresh repositories have no master branch yet
            self._git('push', 'origin', 'HEAD:master')
        return True

    def verify(self, version: Version, delay: float = 2.0) -> bool:
        """Check the AUR reports the new version. Failure is only logged."""
        time.sleep(delay)
        try:
            record = AURReleaseQuery(self.package_name).get_record()
        except SourceUnavailable as e:
            self.logger.warning('Could not verify deployment: %s', e)
            return False

        if record and record.version == version:
            self.logger.info('Package version %s is now available on AUR', version)
            return True

        self.logger.warning('Package may take a few minutes to appear on AUR')
        return False

    def publish(self, artifact: Path, version: Version) -> None:
        """Deploy the version to the AUR."""
        self.check_prerequisites()
        try:
            self.setup_ssh_config()
            self.prepare_repo()
            self.update_pkgbuild(artifact, version)
            pushed = self.commit_and_push(version)
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or '').strip() if isinstance(e.stderr, str) else ''
            msg = f'AUR deployment failed: {" ".join(map(str, e.cmd))} {detail}'.rstrip()
            raise PublishFailed(msg) from e
        except OSError as e:
            msg = f'AUR deployment failed: {e}'
            raise PublishFailed(msg) from e

        if pushed:
            self.verify(version)
