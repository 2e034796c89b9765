"""Configuration for the Claude Desktop Arch Linux packager."""

from pathlib import Path

# Direct installer downloads, keyed by `uname -m`
CLAUDE_DOWNLOADS = {
    'x86_64': (
        'amd64',
        'https://storage.googleapis.com/osprey-downloads-c02f6a0d-347c-492b-a752-3e0651722e97/nest-win-x64/Claude-Setup-x64.exe',
        'Claude-Setup-x64.exe',
    ),
    'aarch64': (
        'arm64',
        'https://storage.googleapis.com/osprey-downloads-c02f6a0d-347c-492b-a752-3e0651722e97/nest-win-arm64/Claude-Setup-arm64.exe',
        'Claude-Setup-arm64.exe',
    ),
}

# Redirect to the latest Windows installer; requires Cloudflare bypass (see downloader.py)
CLAUDE_REDIRECT_URL = 'https://claude.ai/redirect/claudedotcom.v1.290130bf-1c36-4eb0-9a93-2410ca43ae53/api/desktop/win32/x64/exe/latest/redirect'

# Directory structure
PROJECT_ROOT = Path.cwd()
WORK_DIR = PROJECT_ROOT / 'build'
CACHE_DIR = PROJECT_ROOT / '.cache' / 'downloads'
OUTPUT_DIR = PROJECT_ROOT

# Package metadata
PACKAGE_NAME = 'claude-desktop'
MAINTAINER = 'Claude Desktop Linux Maintainers'
DESCRIPTION = 'Claude Desktop for Linux'
PACKAGE_GLOB = f'{PACKAGE_NAME}-*.pkg.tar.*'

# Required commands and the pacman packages providing them
REQUIRED_DEPS = {
    '7z': 'p7zip',
    'wget': 'wget',
    'wrestool': 'icoutils',
    'icotool': 'icoutils',
    'convert': 'imagemagick',
    'npm': 'npm',
    'makepkg': 'pacman',
}

# Release targets
GITHUB_REPO = 'patrickjaja/claude-desktop-bin'
GITHUB_API_URL = 'https://api.github.com'
AUR_PACKAGE_NAME = 'claude-desktop-bin'
AUR_REPO_URL = f'ssh://aur@aur.archlinux.org/{AUR_PACKAGE_NAME}.git'
AUR_RPC_URL = 'https://aur.archlinux.org/rpc/v5/info'
AUR_SSH_KEYS = [Path.home() / '.ssh' / 'aur', Path.home() / '.ssh' / 'id_rsa']

# Fallback git identity for AUR commits
GIT_USER_NAME = 'Claude Desktop Maintainer'
GIT_USER_EMAIL = 'maintainer@example.com'

REQUEST_TIMEOUT = 10
