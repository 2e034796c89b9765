"""Templates for generated package files."""

from pathlib import Path

from .config import DESCRIPTION, GITHUB_REPO, MAINTAINER, PACKAGE_NAME

LAUNCHER_SCRIPT = """\
#!/bin/bash
# Launch with Wayland support if available
exec electron /usr/lib/%PKGNAME%/app.asar \\
    ${WAYLAND_DISPLAY:+--ozone-platform-hint=auto --enable-features=WaylandWindowDecorations} \\
    "$@"
"""

DESKTOP_ENTRY = """\
[Desktop Entry]
Name=Claude
Comment=Claude Desktop
Exec=%PKGNAME% %u
Icon=%PKGNAME%
Type=Application
Terminal=false
Categories=Office;Utility;Network;
MimeType=x-scheme-handler/claude;
StartupWMClass=Claude
"""

# Built locally by makepkg from the staged electron-app directory next to it
PKGBUILD = """\
# Maintainer: %MAINTAINER%
pkgname=%PKGNAME%
pkgver=%PKGVER%
pkgrel=%PKGREL%
pkgdesc="%DESCRIPTION%"
arch=('%ARCH%')
url="https://claude.ai"
license=('custom')
depends=('electron' 'nodejs')
makedepends=('npm' 'asar')
source=()
sha256sums=()

package() {
    install -dm755 "$pkgdir/usr/lib/$pkgname"
    cp -r "$startdir/electron-app"/* "$pkgdir/usr/lib/$pkgname/"

    # Locale files must sit next to the system Electron's resources
    for electron_dir in /usr/lib/electron*; do
        [ -d "$electron_dir" ] || continue
        real_electron_dir=$(realpath "$electron_dir" 2>/dev/null || echo "$electron_dir")
        [ -d "$real_electron_dir" ] || continue
        install -dm755 "$pkgdir$real_electron_dir/resources"
        for json_file in "$pkgdir/usr/lib/$pkgname/locales/"*.json; do
            [ -f "$json_file" ] && install -m644 "$json_file" "$pkgdir$real_electron_dir/resources/"
        done
    done

    install -Dm755 "$startdir/$pkgname.sh" "$pkgdir/usr/bin/$pkgname"
    install -Dm644 "$startdir/$pkgname.desktop" "$pkgdir/usr/share/applications/$pkgname.desktop"
    install -Dm644 "$startdir/$pkgname.png" "$pkgdir/usr/share/icons/hicolor/256x256/apps/$pkgname.png"
}
"""

# Published to the AUR; repackages the package attached to the GitHub release
AUR_PKGBUILD = """\
# Maintainer: %MAINTAINER%
pkgname=%AURNAME%
pkgver=%PKGVER%
pkgrel=%PKGREL%
pkgdesc="%DESCRIPTION% (binary release)"
arch=('%ARCH%')
url="https://github.com/%REPO%"
license=('custom')
depends=('electron' 'nodejs')
provides=('%PKGNAME%')
conflicts=('%PKGNAME%')
options=('!strip')
source=("https://github.com/%REPO%/releases/download/v${pkgver}/%ARTIFACT%")
noextract=('%ARTIFACT%')
sha256sums=('%SHA256%')

package() {
    bsdtar -xf "$srcdir/%ARTIFACT%" -C "$pkgdir" --exclude='.PKGINFO' --exclude='.BUILDINFO' --exclude='.MTREE'
}
"""

# Linux replacement for the Windows-only claude-native module
NATIVE_STUB = """\
// Stub implementation of claude-native using KeyboardKey enum values
const { app, Tray, Menu, nativeImage, Notification, BrowserWindow } = require('electron');
const fs = require('fs');
const path = require('path');

const KeyboardKey = { Backspace: 43, Tab: 280, Enter: 261, Shift: 272, Control: 61, Alt: 40, CapsLock: 56, Escape: 85, Space: 276, PageUp: 251, PageDown: 250, End: 83, Home: 154, LeftArrow: 175, UpArrow: 282, RightArrow: 262, DownArrow: 81, Delete: 79, Meta: 187 };
Object.freeze(KeyboardKey);

let tray = null;

function firstWindow() {
  const windows = BrowserWindow.getAllWindows();
  return windows.length > 0 ? windows[0] : null;
}

function createTray() {
  if (tray) return tray;
  try {
    const iconPaths = [
      path.join(__dirname, '../../resources/TrayIconTemplate.png'),
      path.join(__dirname, '../../resources/TrayIconTemplate-Dark.png'),
      path.join(process.resourcesPath || '', 'TrayIconTemplate.png'),
      path.join(app.getAppPath(), 'resources', 'TrayIconTemplate.png')
    ];
    const iconPath = iconPaths.find((p) => fs.existsSync(p));
    if (!iconPath) return tray;

    const icon = nativeImage.createFromPath(iconPath);
    if (icon.isEmpty()) return tray;

    tray = new Tray(icon);
    tray.setToolTip('Claude Desktop');
    tray.setContextMenu(Menu.buildFromTemplate([
      { label: 'Show Claude', click: () => { const w = firstWindow(); if (w) w.show(); } },
      { type: 'separator' },
      { label: 'Quit', click: () => app.quit() }
    ]));
    tray.on('click', () => {
      const w = firstWindow();
      if (w) { w.isVisible() ? w.hide() : w.show(); }
    });
  } catch (error) {
    console.warn('Failed to create tray icon:', error);
  }
  return tray;
}

function showNotification(title, body, options = {}) {
  try {
    if (Notification.isSupported()) {
      new Notification({
        title: title || 'Claude Desktop',
        body: body || '',
        icon: options.icon,
        silent: options.silent || false
      }).show();
      return true;
    }
  } catch (error) {
    console.warn('Failed to show notification:', error);
  }
  return false;
}

module.exports = {
  getWindowsVersion: () => "10.0.0",
  setWindowEffect: () => {},
  removeWindowEffect: () => {},
  getIsMaximized: () => false,
  flashFrame: () => {},
  clearFlashFrame: () => {},
  showNotification,
  setProgressBar: () => {},
  clearProgressBar: () => {},
  setOverlayIcon: () => {},
  clearOverlayIcon: () => {},
  createTray,
  getTray: () => tray,
  KeyboardKey
};

if (app && app.whenReady) {
  app.whenReady().then(() => {
    if (!app.isPackaged) {
      setTimeout(createTray, 1000);
    }
  });
}
"""


def _fill(template: str, values: dict[str, str]) -> str:
    for key, value in values.items():
        template = template.replace(f'%{key}%', value)
    return template


def render_launcher_script(package_name: str = PACKAGE_NAME) -> str:
    """Render the launcher shell script."""
    return _fill(LAUNCHER_SCRIPT, {'PKGNAME': package_name})


def render_desktop_entry(package_name: str = PACKAGE_NAME) -> str:
    """Render the .desktop file."""
    return _fill(DESKTOP_ENTRY, {'PKGNAME': package_name})


def render_pkgbuild(version: str, arch: str, *, pkgrel: int = 1) -> str:
    """Render the PKGBUILD for the local makepkg build."""
    return _fill(PKGBUILD, {
        'MAINTAINER': MAINTAINER,
        'PKGNAME': PACKAGE_NAME,
        'PKGVER': version,
        'PKGREL': str(pkgrel),
        'DESCRIPTION': DESCRIPTION,
        'ARCH': arch,
    })


def render_aur_pkgbuild(  # noqa: PLR0913
    version: str,
    artifact_name: str,
    sha256: str,
    *,
    aur_name: str,
    arch: str = 'x86_64',
    repo: str = GITHUB_REPO,
    pkgrel: int = 1,
) -> str:
    """Render the AUR -bin PKGBUILD pointing at the GitHub release asset.

    Args:
        version: Upstream version (pkgver)
        artifact_name: File name of the release asset
        sha256: Hex digest of the asset, or 'SKIP'
        aur_name: AUR package name
        arch: Package architecture
        repo: GitHub repository hosting the release
        pkgrel: Package revision

    """
    return _fill(AUR_PKGBUILD, {
        'MAINTAINER': MAINTAINER,
        'AURNAME': aur_name,
        'PKGNAME': PACKAGE_NAME,
        'PKGVER': version,
        'PKGREL': str(pkgrel),
        'DESCRIPTION': DESCRIPTION,
        'ARCH': arch,
        'REPO': repo,
        'ARTIFACT': artifact_name,
        'SHA256': sha256,
    })


def write_resources(pkgbuild_dir: Path, version: str, arch: str) -> None:
    """Write the PKGBUILD and the files its package() step installs.

    Args:
        pkgbuild_dir: Directory makepkg will run in
        version: Package version
        arch: Package architecture (`uname -m`)

    """
    pkgbuild_dir.mkdir(parents=True, exist_ok=True)
    (pkgbuild_dir / 'PKGBUILD').write_text(render_pkgbuild(version, arch))

    launcher = pkgbuild_dir / f'{PACKAGE_NAME}.sh'
    launcher.write_text(render_launcher_script())
    launcher.chmod(0o755)

    (pkgbuild_dir / f'{PACKAGE_NAME}.desktop').write_text(render_desktop_entry())
