"""buildcache CLI for saving and restoring compiled build artifacts.

Provides three commands:

    buildcache save [UNIT...]      store fresh artifacts in the cache
    buildcache restore [UNIT...]   install cached artifacts matching the sources
    buildcache clear               delete the whole cache
"""

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from buildcache.cache import CacheStore
from buildcache.config import BuildCacheSettings
from buildcache.config import load_config
from buildcache.errors import BuildCacheError
from buildcache.graph import GoImplicitImports
from buildcache.models import CacheRunResult
from buildcache.providers import GoListProvider
from buildcache.providers import StaticProvider
from buildcache.services import CacheService

logger = logging.getLogger(__name__)

# Width of a SHA-256 hex digest.
FINGERPRINT_WIDTH = 64


def build_service(settings: BuildCacheSettings, manifest: Path | None = None) -> CacheService:
    """Create the cache service for the configured provider and store.

    Args:
        settings: Loaded settings
        manifest: YAML manifest to describe units from instead of ``go list``

    Returns:
        Ready-to-use CacheService
    """
    store = CacheStore(Path(settings.cache_dir))
    if manifest is not None:
        return CacheService(
            StaticProvider.from_yaml(manifest),
            store,
            fingerprint_workers=settings.fingerprint_workers,
        )
    return CacheService(
        GoListProvider(settings.go_command),
        store,
        implicit_imports=GoImplicitImports(),
        fingerprint_workers=settings.fingerprint_workers,
    )


def render_result(result: CacheRunResult) -> None:
    """Print one line per unit: fingerprint (or ``-``), marker, identity."""
    for unit in result.units:
        fingerprint = unit.fingerprint or "-"
        click.echo(f"{fingerprint:<{FINGERPRINT_WIDTH}} {unit.marker}{unit.identity}")


def _run(ctx: click.Context, command: str, requests: tuple[str, ...], tests: bool, manifest: Path | None) -> None:
    settings: BuildCacheSettings = ctx.obj
    try:
        service = build_service(settings, manifest)
        if command == "save":
            result = service.save(list(requests), include_tests=tests)
        else:
            result = service.restore(list(requests), include_tests=tests)
    except BuildCacheError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    render_result(result)
    if not result.ok:
        sys.exit(1)


unit_requests = click.argument("requests", nargs=-1)
tests_option = click.option("--tests", is_flag=True, help="Also resolve test imports of the requested units")
manifest_option = click.option(
    "--manifest",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Describe units from a YAML manifest instead of running go list",
)


@click.group()
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache directory (default: $BUILDCACHE_CACHE_DIR, $CACHE or ~/buildcache)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: $BUILDCACHE_HOME/config/config.yaml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, cache_dir: Path | None, config_path: Path | None, verbose: bool):
    """buildcache - Cache compiled build artifacts by content fingerprint."""
    try:
        settings = load_config(config_path)
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors())
        raise click.UsageError(f"invalid configuration: {problems}") from e

    if cache_dir is not None:
        settings.cache_dir = str(cache_dir.expanduser().resolve())

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        stream=sys.stderr,
    )
    ctx.obj = settings


@cli.command()
@unit_requests
@tests_option
@manifest_option
@click.pass_context
def save(ctx: click.Context, requests: tuple[str, ...], tests: bool, manifest: Path | None):
    """Save fresh artifacts of UNIT (default: current directory) and its dependencies."""
    _run(ctx, "save", requests, tests, manifest)


@cli.command()
@unit_requests
@tests_option
@manifest_option
@click.pass_context
def restore(ctx: click.Context, requests: tuple[str, ...], tests: bool, manifest: Path | None):
    """Restore cached artifacts of UNIT (default: current directory) and its dependencies."""
    _run(ctx, "restore", requests, tests, manifest)


@cli.command()
@unit_requests
@click.pass_context
def clear(ctx: click.Context, requests: tuple[str, ...]):
    """Delete the cache directory and every entry in it."""
    if requests:
        logger.debug(f"clear removes the whole cache; ignoring {' '.join(requests)}")
    settings: BuildCacheSettings = ctx.obj
    try:
        CacheStore(Path(settings.cache_dir)).clear()
    except BuildCacheError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    """Entry point for buildcache CLI.

    Usage errors exit with status 1 rather than click's default of 2.
    """
    try:
        cli.main(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted")
        sys.exit(1)
