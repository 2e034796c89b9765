"""Arch Linux package builder for Claude Desktop."""

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path

import requests

from .config import CACHE_DIR, OUTPUT_DIR, PACKAGE_NAME, REQUIRED_DEPS, WORK_DIR
from .downloader import get_cached_installer
from .errors import BuildFailed
from .sources import Architecture, detect_architecture
from .templates import NATIVE_STUB, write_resources
from .version import Version, parse_version

TITLE_BAR_PATTERN = re.compile(r'if\(!([a-zA-Z]+)\s*&&\s*([a-zA-Z]+)\)')
ICON_NAME = 'claude_6_256x256x32.png'


class ArchPackageBuilder:
    """Builds a Claude Desktop pacman package from the Windows installer."""

    def __init__(
        self,
        arch: Architecture | None = None,
        *,
        skip_deps: bool = False,
        clean: bool = True,
    ) -> None:
        """Initialize the builder.

        Args:
            arch: Target architecture (host architecture if omitted)
            skip_deps: Do not check or install system dependencies
            clean: Remove the work directory after a successful build

        """
        self.arch = arch or detect_architecture()
        self.skip_deps = skip_deps
        self.clean = clean
        self.work_dir = WORK_DIR
        self.cache_dir = CACHE_DIR
        self.output_dir = OUTPUT_DIR
        self.logger = logging.getLogger(__name__)

    @property
    def staging_dir(self) -> Path:
        """Directory the application tree is assembled in."""
        return self.work_dir / 'electron-app'

    @property
    def asar_exec(self) -> Path:
        """asar binary installed into the work directory."""
        return self.work_dir / 'node_modules' / '.bin' / 'asar'

    def check_system(self) -> None:
        """Refuse to run outside Arch Linux or as root."""
        if not Path('/etc/arch-release').exists():
            msg = 'This builder is designed for Arch Linux'
            raise RuntimeError(msg)
        if os.geteuid() == 0:
            msg = 'Do not run the builder as root; it will call sudo when needed'
            raise RuntimeError(msg)

    def missing_packages(self) -> list[str]:
        """Get the pacman packages providing missing commands."""
        return sorted({pkg for cmd, pkg in REQUIRED_DEPS.items() if not shutil.which(cmd)})

    def check_dependencies(self) -> None:
        """Check and install required system dependencies."""
        if not shutil.which('node'):
            msg = 'Node.js not found. Please install the nodejs package.'
            raise RuntimeError(msg)

        packages = self.missing_packages()
        if packages:
            self.logger.info('Installing dependencies: %s', ' '.join(packages))
            subprocess.run(['sudo', 'pacman', '-S', '--needed', '--noconfirm', *packages], check=True)

        self.logger.info('All dependencies satisfied')

    def prepare_work_dir(self) -> None:
        """Start from an empty work directory with electron and asar installed."""
        if self.work_dir.exists():
            shutil.rmtree(self.work_dir)
        self.staging_dir.mkdir(parents=True)

        self.logger.info('Installing Electron and Asar...')
        (self.work_dir / 'package.json').write_text(
            '{"name":"claude-desktop-build","version":"0.0.1","private":true}',
        )
        subprocess.run(['npm', 'install', '--no-save', 'electron', '@electron/asar'], cwd=self.work_dir, check=True)

        electron_dist = self.work_dir / 'node_modules' / 'electron' / 'dist'
        if not electron_dist.is_dir() or not self.asar_exec.exists():
            msg = 'Electron or Asar installation incomplete'
            raise RuntimeError(msg)

    def _unpack_installer(self, installer: Path, extract_dir: Path) -> Path:
        """Extract the installer into a fresh directory and return the nupkg inside."""
        if extract_dir.exists():
            shutil.rmtree(extract_dir)
        extract_dir.mkdir(parents=True)
        subprocess.run(['7z', 'x', '-y', str(installer), f'-o{extract_dir}'], check=True, capture_output=True)

        nupkg_files = sorted(extract_dir.glob('AnthropicClaude-*.nupkg'))
        if not nupkg_files:
            msg = 'Could not find AnthropicClaude nupkg file'
            raise RuntimeError(msg)
        return nupkg_files[0]

    def extract_installer(self, version: Version) -> Path:
        """Extract installer and nupkg, checking the nupkg carries the expected version.

        A cached installer holding another version is downloaded again once.

        Returns:
            Path to the lib/net45 directory of the extracted nupkg

        """
        url = self.arch.download_url
        dest = self.cache_dir / self.arch.installer_filename
        installer = get_cached_installer(url, dest)

        self.logger.info('Extracting resources...')
        extract_dir = self.work_dir / 'claude-extract'
        nupkg = self._unpack_installer(installer, extract_dir)

        found = parse_version(nupkg.name)
        if found != version:
            self.logger.info('Cached installer holds version %s, downloading %s', found, version)
            installer = get_cached_installer(url, dest, force=True)
            nupkg = self._unpack_installer(installer, extract_dir)
            found = parse_version(nupkg.name)

        if found != version:
            msg = f'Installer contains version {found}, expected {version}'
            raise RuntimeError(msg)

        subprocess.run(['7z', 'x', '-y', str(nupkg), f'-o{extract_dir}'], check=True, capture_output=True)

        lib_dir = extract_dir / 'lib' / 'net45'
        if not (lib_dir / 'claude.exe').exists():
            msg = f'Cannot find claude.exe in {lib_dir}'
            raise RuntimeError(msg)
        return lib_dir

    def process_icons(self, lib_dir: Path) -> Path:
        """Extract the application icon from claude.exe.

        Returns:
            Path to the 256x256 PNG icon

        """
        self.logger.info('Processing icons...')
        icon_dir = self.work_dir / 'icons'
        icon_dir.mkdir(parents=True, exist_ok=True)

        subprocess.run(
            ['wrestool', '-x', '-t', '14', str(lib_dir / 'claude.exe'), '-o', str(icon_dir / 'claude.ico')],
            check=True,
        )
        subprocess.run(['icotool', '-x', 'claude.ico'], cwd=icon_dir, check=True)

        icon = icon_dir / ICON_NAME
        if not icon.exists():
            msg = f'Icon {ICON_NAME} not extracted'
            raise RuntimeError(msg)
        return icon

    def patch_title_bar(self, app_dir: Path) -> None:
        """Enable the title bar on Linux by flipping the platform check."""
        assets = app_dir / '.vite' / 'renderer' / 'main_window' / 'assets'
        targets = list(assets.glob('MainWindowPage-*.js')) if assets.is_dir() else []
        if not targets:
            msg = 'Could not find MainWindowPage JS file'
            raise RuntimeError(msg)

        for target in targets:
            content = target.read_text()
            new_content = TITLE_BAR_PATTERN.sub(r'if(\1 && \2)', content)
            if new_content == content:
                self.logger.warning('Title bar patch pattern not found in %s', target.name)
            else:
                target.write_text(new_content)
                self.logger.info('Title bar patch applied to %s', target.name)

    def patch_app_asar(self, lib_dir: Path) -> None:
        """Unpack app.asar, install the Linux stubs and resources, repack it."""
        self.logger.info('Processing app.asar...')
        resources_dir = lib_dir / 'resources'
        staging = self.staging_dir

        shutil.copy2(resources_dir / 'app.asar', staging / 'app.asar')
        shutil.copytree(resources_dir / 'app.asar.unpacked', staging / 'app.asar.unpacked', dirs_exist_ok=True)

        contents = staging / 'app.asar.contents'
        subprocess.run([str(self.asar_exec), 'extract', 'app.asar', contents.name], cwd=staging, check=True)

        native_dir = contents / 'node_modules' / 'claude-native'
        native_dir.mkdir(parents=True, exist_ok=True)
        (native_dir / 'index.js').write_text(NATIVE_STUB)

        app_resources = contents / 'resources'
        i18n_dir = app_resources / 'i18n'
        i18n_dir.mkdir(parents=True, exist_ok=True)
        for tray_file in resources_dir.glob('Tray*'):
            shutil.copy2(tray_file, app_resources)
        for json_file in resources_dir.glob('*-*.json'):
            shutil.copy2(json_file, i18n_dir)

        self.patch_title_bar(contents)

        subprocess.run([str(self.asar_exec), 'pack', contents.name, 'app.asar'], cwd=staging, check=True)
        shutil.rmtree(contents)

        unpacked_native = staging / 'app.asar.unpacked' / 'node_modules' / 'claude-native'
        unpacked_native.mkdir(parents=True, exist_ok=True)
        (unpacked_native / 'index.js').write_text(NATIVE_STUB)

    def stage_runtime(self, lib_dir: Path) -> None:
        """Copy Electron and the locale files into the staging tree."""
        self.logger.info('Copying Electron distribution...')
        electron_dst = self.staging_dir / 'node_modules' / 'electron'
        shutil.copytree(self.work_dir / 'node_modules' / 'electron', electron_dst, symlinks=True, dirs_exist_ok=True)
        (electron_dst / 'dist' / 'electron').chmod(0o755)

        locales = self.staging_dir / 'locales'
        locales.mkdir(exist_ok=True)
        for json_file in (lib_dir / 'resources').glob('*.json'):
            shutil.copy2(json_file, locales)

    def make_package(self, version: Version, icon: Path) -> Path:
        """Run makepkg and move the package to the output directory."""
        self.logger.info('Building Arch Linux package...')
        pkgbuild_dir = self.work_dir / 'pkgbuild'
        pkgbuild_dir.mkdir(parents=True, exist_ok=True)

        shutil.move(self.staging_dir, pkgbuild_dir / 'electron-app')
        shutil.copy2(icon, pkgbuild_dir / f'{PACKAGE_NAME}.png')
        write_resources(pkgbuild_dir, str(version), self.arch.machine)

        subprocess.run(['makepkg', '-f'], cwd=pkgbuild_dir, check=True)

        packages = sorted(pkgbuild_dir.glob(f'{PACKAGE_NAME}-{version}-*.pkg.tar.*'))
        if not packages:
            msg = 'makepkg produced no package file'
            raise RuntimeError(msg)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        artifact = self.output_dir / packages[0].name
        shutil.move(packages[0], artifact)
        return artifact

    def build(self, version: Version) -> Path:
        """Run the complete build for one upstream version.

        Returns:
            Path to the built .pkg.tar.* file

        Raises:
            BuildFailed: If any step of the toolchain fails

        """
        self.logger.info('Building %s %s for %s', PACKAGE_NAME, version, self.arch.machine)
        try:
            self.check_system()
            if not self.skip_deps:
                self.check_dependencies()

            self.prepare_work_dir()
            lib_dir = self.extract_installer(version)
            icon = self.process_icons(lib_dir)
            self.patch_app_asar(lib_dir)
            self.stage_runtime(lib_dir)
            artifact = self.make_package(version, icon)
        except subprocess.CalledProcessError as e:
            msg = f'Command failed ({e.returncode}): {" ".join(map(str, e.cmd))}'
            raise BuildFailed(msg) from e
        except (requests.RequestException, OSError, RuntimeError) as e:
            msg = f'Build of {version} failed: {e}'
            raise BuildFailed(msg) from e

        if self.clean:
            self.logger.info('Cleaning up...')
            shutil.rmtree(self.work_dir, ignore_errors=True)

        self.logger.info('Package created: %s', artifact)
        return artifact
