"""CLI interface for the Claude Desktop Arch Linux packager."""

import json
import logging
import shutil
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from . import __version__
from .builder import ArchPackageBuilder
from .config import AUR_PACKAGE_NAME, CACHE_DIR, GITHUB_REPO, OUTPUT_DIR, WORK_DIR
from .decision import Proceed, decide
from .ledger import AURReleaseQuery, GitHubReleaseQuery, ReleaseQuery
from .publisher import AURPublisher, GitHubReleasePublisher, Publisher
from .release import ReleaseGate, ReleaseOutcome
from .sources import PackageFileVersionSource, StaticVersionSource, get_version_source
from .version import VersionSource, probe


def source_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options selecting where versions are read from and compared against."""
    options = [
        click.option(
            '--source', '-s',
            type=click.Choice(['installer', 'redirect', 'package']),
            default='installer',
            help='Where to read the latest upstream version from',
        ),
        click.option(
            '--from-string',
            help='Use this string (e.g. a nupkg filename) instead of querying a source',
        ),
        click.option(
            '--package-dir',
            type=click.Path(file_okay=False, path_type=Path),
            default=OUTPUT_DIR,
            show_default=True,
            help='Directory holding built packages (for --source package)',
        ),
        click.option(
            '--ledger',
            type=click.Choice(['github', 'aur']),
            default='github',
            help='Where published versions are listed from',
        ),
        click.option('--repo', default=GITHUB_REPO, show_default=True, help='GitHub repository'),
        click.option('--aur-package', default=AUR_PACKAGE_NAME, show_default=True, help='AUR package name'),
        click.option('--github-token', envvar='GITHUB_TOKEN', help='GitHub API token'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def make_source(source: str, from_string: str | None, package_dir: Path) -> VersionSource:
    """Build the version source selected on the command line."""
    if from_string:
        return StaticVersionSource(from_string)
    if source == 'package':
        return PackageFileVersionSource(package_dir)
    return get_version_source(source)


def make_query(ledger: str, repo: str, aur_package: str, token: str | None) -> ReleaseQuery:
    """Build the release query selected on the command line."""
    if ledger == 'aur':
        return AURReleaseQuery(aur_package)
    return GitHubReleaseQuery(repo, token)


def report(outcome: ReleaseOutcome, *, output_json: bool) -> None:
    """Print the outcome and exit with its status."""
    if output_json:
        click.echo(json.dumps(outcome.as_dict(), indent=2))
    else:
        click.echo(outcome.status_line, err=outcome.exit_code != 0)
    sys.exit(outcome.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name='claude-desktop-arch')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug output')
def cli(*, verbose: bool, debug: bool) -> None:
    """Package Claude Desktop for Arch Linux and publish it."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s',
    )


@cli.command()
@source_options
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def check(  # noqa: PLR0913
    source: str,
    from_string: str | None,
    package_dir: Path,
    ledger: str,
    repo: str,
    aur_package: str,
    github_token: str | None,
    *,
    output_json: bool,
) -> None:
    """Decide whether the latest upstream version needs a release.

    Exits 0 whether the decision is skip or proceed; the decision is printed.
    """
    try:
        gate = ReleaseGate(
            make_source(source, from_string, package_dir),
            make_query(ledger, repo, aur_package, github_token),
        )
    except RuntimeError as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    report(gate.run(dry_run=True), output_json=output_json)


@cli.command()
@source_options
@click.option(
    '--publish', 'targets',
    type=click.Choice(['github', 'aur']),
    multiple=True,
    help='Publish target (repeatable, in order)',
)
@click.option('--skip-deps', is_flag=True, help='Skip dependency check')
@click.option('--clean/--no-clean', default=True, help='Remove intermediate build files')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def release(  # noqa: PLR0913
    source: str,
    from_string: str | None,
    package_dir: Path,
    ledger: str,
    repo: str,
    aur_package: str,
    github_token: str | None,
    targets: tuple[str, ...],
    *,
    skip_deps: bool,
    clean: bool,
    output_json: bool,
) -> None:
    """Build and publish the latest version unless it is already released."""
    publishers: list[Publisher] = []
    for target in targets:
        if target == 'github':
            publishers.append(GitHubReleasePublisher(repo, github_token))
        else:
            publishers.append(AURPublisher(aur_package, github_repo=repo))

    try:
        builder = ArchPackageBuilder(skip_deps=skip_deps, clean=clean)
        builder.output_dir = package_dir
        gate = ReleaseGate(
            make_source(source, from_string, package_dir),
            make_query(ledger, repo, aur_package, github_token),
            builder,
            publishers,
        )
    except RuntimeError as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    report(gate.run(), output_json=output_json)


@cli.command()
@click.option('--from-string', help='Version string to build instead of probing the installer')
@click.option(
    '--output-dir',
    type=click.Path(file_okay=False, path_type=Path),
    help='Output directory for the package',
)
@click.option('--skip-deps', is_flag=True, help='Skip dependency check')
@click.option('--clean/--no-clean', default=True, help='Remove intermediate build files')
def build(from_string: str | None, output_dir: Path | None, *, skip_deps: bool, clean: bool) -> None:
    """Build the package for the latest version, without checking releases."""
    try:
        builder = ArchPackageBuilder(skip_deps=skip_deps, clean=clean)
        if output_dir:
            builder.output_dir = output_dir

        source = StaticVersionSource(from_string) if from_string else get_version_source('installer')
        version = probe(source)
        click.echo(f'Detected Claude version: {version}')

        package = builder.build(version)

    except (OSError, RuntimeError) as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    click.echo(f'Package built: {package}')
    click.echo('Install with:')
    click.echo(f'  sudo pacman -U {package}')


@cli.command('publish-aur')
@click.option(
    '--package-dir',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=OUTPUT_DIR,
    show_default=True,
    help='Directory holding the built package',
)
@click.option('--aur-package', default=AUR_PACKAGE_NAME, show_default=True, help='AUR package name')
@click.option('--repo', default=GITHUB_REPO, show_default=True, help='GitHub repository hosting the package')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
def publish_aur(package_dir: Path, aur_package: str, repo: str, *, yes: bool) -> None:
    """Deploy an already built package to the AUR."""
    try:
        package = PackageFileVersionSource(package_dir).find_package()
        version = probe(StaticVersionSource(package.name))
        click.echo(f'Deploying version: {version}')

        if not yes and not click.confirm('Ready to deploy to AUR. Continue?'):
            click.echo('Deployment cancelled')
            return

        AURPublisher(aur_package, github_repo=repo).publish(package, version)

    except (OSError, RuntimeError) as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    click.echo('Done!')


@cli.command()
@source_options
def info(  # noqa: PLR0913
    source: str,
    from_string: str | None,
    package_dir: Path,
    ledger: str,
    repo: str,
    aur_package: str,
    github_token: str | None,
) -> None:
    """Show the latest upstream version and the published versions."""
    try:
        version = probe(make_source(source, from_string, package_dir))
        published = make_query(ledger, repo, aur_package, github_token).list_published_versions()
    except (OSError, RuntimeError) as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    click.echo(f'Upstream version: {version}')
    click.echo(f'Published ({ledger}): {", ".join(str(v) for v in sorted(published, reverse=True)) or "None"}')
    update = isinstance(decide(version, published), Proceed)
    click.echo(f'Update available: {"Yes" if update else "No"}')


@cli.command()
def clean() -> None:
    """Clean build artifacts and cache."""
    if WORK_DIR.exists():
        click.echo(f'Removing {WORK_DIR}...')
        shutil.rmtree(WORK_DIR)

    if CACHE_DIR.exists() and click.confirm('Also remove download cache?'):
        click.echo(f'Removing {CACHE_DIR}...')
        shutil.rmtree(CACHE_DIR)

    click.echo('Cleanup complete')


def main() -> None:
    """Entry point for the CLI."""
    cli(auto_envvar_prefix='CLAUDE_DESKTOP')


if __name__ == '__main__':
    main()
