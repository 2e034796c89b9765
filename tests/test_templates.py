"""
Tests for generated package files.
"""
from __future__ import annotations

from claude_desktop_arch.templates import (
    render_aur_pkgbuild,
    render_desktop_entry,
    render_launcher_script,
    render_pkgbuild,
    write_resources,
)


def test_pkgbuild_has_version_and_arch():
    pkgbuild = render_pkgbuild('0.13.11', 'x86_64')

    assert 'pkgname=claude-desktop\n' in pkgbuild
    assert 'pkgver=0.13.11\n' in pkgbuild
    assert 'pkgrel=1\n' in pkgbuild
    assert "arch=('x86_64')" in pkgbuild
    assert '%' not in pkgbuild.replace('%u', '')


def test_aur_pkgbuild_points_at_release_asset():
    pkgbuild = render_aur_pkgbuild(
        '0.13.11',
        'claude-desktop-0.13.11-1-x86_64.pkg.tar.zst',
        'ab' * 32,
        aur_name='claude-desktop-bin',
        repo='owner/repo',
    )

    assert 'pkgname=claude-desktop-bin\n' in pkgbuild
    assert "provides=('claude-desktop')" in pkgbuild
    assert (
        'https://github.com/owner/repo/releases/download/v${pkgver}/claude-desktop-0.13.11-1-x86_64.pkg.tar.zst'
        in pkgbuild
    )
    assert f"sha256sums=('{'ab' * 32}')" in pkgbuild


def test_desktop_entry_keeps_field_code():
    entry = render_desktop_entry()
    assert 'Exec=claude-desktop %u' in entry
    assert 'MimeType=x-scheme-handler/claude;' in entry


def test_launcher_uses_system_electron():
    assert 'exec electron /usr/lib/claude-desktop/app.asar' in render_launcher_script()


def test_write_resources(tmp_path):
    write_resources(tmp_path, '0.13.11', 'aarch64')

    assert "arch=('aarch64')" in (tmp_path / 'PKGBUILD').read_text()
    launcher = tmp_path / 'claude-desktop.sh'
    assert launcher.stat().st_mode & 0o111
    assert (tmp_path / 'claude-desktop.desktop').exists()
