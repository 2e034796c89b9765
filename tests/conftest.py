"""Fakes shared by the release pipeline tests."""
from __future__ import annotations

from pathlib import Path

import pytest

from claude_desktop_arch.errors import BuildFailed, PublishFailed, SourceUnavailable
from claude_desktop_arch.version import Version


class FakeSource:
    def __init__(self, value: str = 'AnthropicClaude-0.13.11-full.nupkg', fail: bool = False):
        self.value = value
        self.fail = fail
        self.call_count = 0

    def fetch_latest_version_string(self) -> str:
        self.call_count += 1
        if self.fail:
            raise SourceUnavailable('network unreachable')
        return self.value


class FakeLedger:
    """Release store shared by the fake query and the fake publisher."""

    def __init__(self, versions: set[Version] | None = None, fail: bool = False):
        self.versions = set(versions or ())
        self.fail = fail

    def list_published_versions(self) -> set[Version]:
        if self.fail:
            raise SourceUnavailable('release list unavailable')
        return set(self.versions)


class FakeBuilder:
    def __init__(self, tmp_path: Path, fail: bool = False):
        self.tmp_path = tmp_path
        self.fail = fail
        self.built: list[Version] = []

    def build(self, version: Version) -> Path:
        if self.fail:
            raise BuildFailed('makepkg exited with 1')
        self.built.append(version)
        artifact = self.tmp_path / f'claude-desktop-{version}-1-x86_64.pkg.tar.zst'
        artifact.write_bytes(b'package')
        return artifact


class FakePublisher:
    def __init__(self, ledger: FakeLedger | None = None, fail: bool = False):
        self.ledger = ledger
        self.fail = fail
        self.published: list[tuple[Path, Version]] = []

    def publish(self, artifact: Path, version: Version) -> None:
        if self.fail:
            raise PublishFailed('push rejected')
        self.published.append((artifact, version))
        if self.ledger is not None:
            self.ledger.versions.add(version)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def builder(tmp_path: Path) -> FakeBuilder:
    return FakeBuilder(tmp_path)
