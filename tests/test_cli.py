"""
CLI tests: the four release scenarios end to end through click.
"""
from __future__ import annotations

import json
from unittest.mock import patch

from click.testing import CliRunner

from claude_desktop_arch.cli import cli
from claude_desktop_arch.errors import SourceUnavailable
from claude_desktop_arch.version import Version

NUPKG = 'AnthropicClaude-0.13.11-full.nupkg'
LIST_VERSIONS = 'claude_desktop_arch.cli.GitHubReleaseQuery.list_published_versions'


def run(*args):
    return CliRunner().invoke(cli, list(args))


def test_new_version_proceeds():
    with patch(LIST_VERSIONS, return_value=set()):
        result = run('check', '--from-string', NUPKG)

    assert result.exit_code == 0
    assert 'version=0.13.11 decision=proceed' in result.output


def test_released_version_skips():
    with patch(LIST_VERSIONS, return_value={Version(0, 13, 11)}):
        result = run('check', '--from-string', NUPKG)

    assert result.exit_code == 0
    assert 'decision=skip reason=already-released' in result.output


def test_bad_version_fails():
    with patch(LIST_VERSIONS, return_value=set()) as query:
        result = run('check', '--from-string', 'AnthropicClaude-badversion.nupkg')

    assert result.exit_code == 1
    assert 'InvalidVersion' in result.output
    query.assert_not_called()


def test_source_failure_fails():
    with (
        patch('claude_desktop_arch.cli.make_source') as make_source,
        patch(LIST_VERSIONS, return_value=set()),
    ):
        make_source.return_value.fetch_latest_version_string.side_effect = SourceUnavailable('timed out')
        result = run('check')

    assert result.exit_code == 1
    assert 'SourceUnavailable: timed out' in result.output


def test_check_json():
    with patch(LIST_VERSIONS, return_value=set()):
        result = run('check', '--from-string', NUPKG, '--json')

    assert json.loads(result.output)['decision'] == 'proceed'


def test_aur_ledger():
    with patch('claude_desktop_arch.cli.AURReleaseQuery.list_published_versions', return_value={Version(0, 13, 11)}):
        result = run('check', '--from-string', NUPKG, '--ledger', 'aur')

    assert 'decision=skip' in result.output


def test_release_skips_without_building():
    with (
        patch(LIST_VERSIONS, return_value={Version(0, 13, 11)}),
        patch('claude_desktop_arch.builder.detect_architecture'),
        patch('claude_desktop_arch.cli.ArchPackageBuilder.build') as build,
    ):
        result = run('release', '--from-string', NUPKG, '--publish', 'aur')

    assert result.exit_code == 0
    build.assert_not_called()


def test_release_builds_and_publishes(tmp_path):
    artifact = tmp_path / 'claude-desktop-0.13.11-1-x86_64.pkg.tar.zst'

    with (
        patch(LIST_VERSIONS, return_value=set()),
        patch('claude_desktop_arch.builder.detect_architecture'),
        patch('claude_desktop_arch.cli.ArchPackageBuilder.build', return_value=artifact) as build,
        patch('claude_desktop_arch.cli.GitHubReleasePublisher.publish') as publish,
    ):
        result = run('release', '--from-string', NUPKG, '--publish', 'github', '--github-token', 't')

    assert result.exit_code == 0, result.output
    build.assert_called_once_with(Version(0, 13, 11))
    publish.assert_called_once_with(artifact, Version(0, 13, 11))
    assert f'outcome=published {artifact.name}' in result.output


def test_info():
    with patch(LIST_VERSIONS, return_value={Version(0, 13, 10), Version(0, 12, 0)}):
        result = run('info', '--from-string', NUPKG)

    assert result.exit_code == 0
    assert 'Upstream version: 0.13.11' in result.output
    assert 'Published (github): 0.13.10, 0.12.0' in result.output
    assert 'Update available: Yes' in result.output


def test_info_already_published():
    with patch(LIST_VERSIONS, return_value={Version(0, 13, 11)}):
        result = run('info', '--from-string', NUPKG)

    assert result.exit_code == 0
    assert 'Update available: No' in result.output


def test_publish_aur_cancelled(tmp_path):
    (tmp_path / 'claude-desktop-0.13.11-1-x86_64.pkg.tar.zst').touch()

    with patch('claude_desktop_arch.cli.AURPublisher.publish') as publish:
        result = CliRunner().invoke(cli, ['publish-aur', '--package-dir', str(tmp_path)], input='n\n')

    assert 'Deploying version: 0.13.11' in result.output
    assert 'Deployment cancelled' in result.output
    publish.assert_not_called()


def test_publish_aur_confirmed(tmp_path):
    package = tmp_path / 'claude-desktop-0.13.11-1-x86_64.pkg.tar.zst'
    package.touch()

    with patch('claude_desktop_arch.cli.AURPublisher.publish') as publish:
        result = run('publish-aur', '--package-dir', str(tmp_path), '--yes')

    assert result.exit_code == 0
    publish.assert_called_once_with(package, Version(0, 13, 11))


def test_build_reports_failure():
    with (
        patch('claude_desktop_arch.builder.detect_architecture'),
        patch('claude_desktop_arch.cli.ArchPackageBuilder.build', side_effect=RuntimeError('makepkg failed')),
    ):
        result = run('build', '--from-string', NUPKG)

    assert result.exit_code == 1
    assert 'Error: makepkg failed' in result.output
