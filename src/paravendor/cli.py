"""git-paravendor CLI - vendor git dependencies into a ledger branch."""
import functools
import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from paravendor.core.config import Settings
from paravendor.core.errors import (
    AlreadyInitializedError,
    DependencyNotFoundError,
    DuplicateDependencyError,
    LedgerConflictError,
    ManifestParseError,
    NetworkFetchError,
    NotInitializedError,
    ParavendorError,
    ReferenceNotFoundError,
)
from paravendor.git.repository import FetchProgress, GitRepository
from paravendor.ledger import Vendor

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(name)s: %(message)s",
)
logger = logging.getLogger("paravendor")

EXIT_CODES = [
    (ReferenceNotFoundError, 3),
    (DependencyNotFoundError, 3),
    (NotInitializedError, 4),
    (AlreadyInitializedError, 4),
    (DuplicateDependencyError, 4),
    (NetworkFetchError, 5),
    (LedgerConflictError, 6),
    (ManifestParseError, 7),
]


def exit_code_for(error: Exception) -> int:
    for error_cls, code in EXIT_CODES:
        if isinstance(error, error_cls):
            return code
    return 1


def handle_errors(command):
    """Log paravendor errors and exit with their code instead of a traceback."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except ParavendorError as e:
            logger.error(str(e))
            sys.exit(exit_code_for(e))

    return wrapper


class ProgressPrinter:
    """Renders fetch progress on one stderr line, only when stderr is a terminal."""

    def __init__(self):
        self.stream = click.get_text_stream("stderr")
        self.enabled = self.stream.isatty()

    def __call__(self, name: str, report: FetchProgress) -> None:
        if not self.enabled:
            return
        click.echo(
            f"\r{name}: {report.stage} {report.current}/{report.total}",
            file=self.stream,
            nl=report.current >= report.total,
        )


@click.group()
@click.option(
    "-C",
    "change_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Run as if started in <path>",
)
@click.option(
    "--git-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="GIT_DIR",
    default=None,
    help="Path to the repository's git directory",
)
@click.option(
    "--branch",
    default=None,
    help="Ledger branch name (default: paravendor, env PARAVENDOR_BRANCH)",
)
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity")
@click.pass_context
def main(ctx, change_dir: Optional[Path], git_dir: Optional[Path], branch: Optional[str], verbose: int):
    """Vendor git dependencies by recording their history on a ledger branch."""
    if verbose:
        logger.setLevel(logging.DEBUG if verbose > 1 else logging.INFO)

    try:
        settings = Settings.from_env(branch=branch)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="--branch / PARAVENDOR_*")
    repository = GitRepository(
        change_dir or Path.cwd(),
        git_dir=git_dir,
        timeout=settings.git_timeout,
        fetch_timeout=settings.fetch_timeout,
    )
    ctx.obj = Vendor(repository, settings)


@main.command()
@click.option(
    "--ignore-remote",
    is_flag=True,
    help="Don't adopt a remote ledger branch even if one exists",
)
@click.option(
    "--remote",
    default=None,
    help="Remote to adopt the ledger from (default: upstream of the current branch)",
)
@click.pass_obj
@handle_errors
def init(vendor: Vendor, ignore_remote: bool, remote: Optional[str]):
    """Initialize the ledger branch in a repository.

    Exit codes:
        0: Success
        4: Ledger branch already exists
    """
    if remote:
        vendor.settings = vendor.settings.model_copy(update={"remote": remote})
    result = vendor.bootstrap(ignore_remote=ignore_remote)
    if result.adopted_from:
        click.echo(
            f"[OK] Adopted {vendor.settings.branch} from "
            f"{result.adopted_from}/{vendor.settings.branch} at {result.handle.tip[:12]}"
        )
    else:
        click.echo(f"[OK] Initialized {vendor.settings.branch} at {result.handle.tip[:12]}")


@main.command()
@click.argument("name")
@click.argument("url")
@click.pass_obj
@handle_errors
def add(vendor: Vendor, name: str, url: str):
    """Vendor a new dependency NAME fetched from URL.

    Examples:
        git paravendor add zlib https://github.com/madler/zlib.git
    """
    handle = vendor.add_dependency(name, url, progress=ProgressPrinter())
    if handle is not None:
        click.echo(f"[OK] Added {name} at {handle.tip[:12]}")


@main.command(name="list")
@click.pass_obj
@handle_errors
def list_(vendor: Vendor):
    """List vendored dependencies."""
    for name, url in vendor.list_dependencies():
        click.echo(f"{name} {url}")


@main.command(name="show-refs")
@click.argument("name")
@click.pass_obj
@handle_errors
def show_refs(vendor: Vendor, name: str):
    """Show all refs recorded for dependency NAME."""
    for ref in vendor.list_references(name):
        click.echo(ref)


@main.command(name="show-ref")
@click.argument("name")
@click.argument("reference")
@click.pass_obj
@handle_errors
def show_ref(vendor: Vendor, name: str, reference: str):
    """Resolve REFERENCE (branch, tag or full ref) in dependency NAME.

    Exit codes:
        0: Success
        3: Dependency or reference not found
    """
    click.echo(vendor.resolve_reference(name, reference))


@main.command()
@click.argument("names", nargs=-1)
@click.pass_obj
@handle_errors
def sync(vendor: Vendor, names):
    """Sync vendored dependencies (all of them unless NAMES are given)."""
    changed = vendor.sync(names, progress=ProgressPrinter())
    for name in changed:
        click.echo(f"Synced {name}")
    if not changed:
        click.echo("No updates detected", err=True)


@main.command(context_settings={"ignore_unknown_options": True})
@click.option("--plain", is_flag=True, help="Print the history without delegating to git log")
@click.argument("options", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
@handle_errors
def log(vendor: Vendor, plain: bool, options):
    """Show the ledger history (first parents only).

    Extra OPTIONS are passed to `git log` when git is available.
    """
    history = vendor.history()
    git = None if plain else shutil.which("git")
    if git is None:
        for entry in history:
            click.echo(str(entry))
        return

    cmd = vendor.repository.command("log", *options, vendor.settings.ledger_ref, "--first-parent")
    result = subprocess.run(cmd)
    if result.returncode != 0:
        sys.exit(result.returncode)


if __name__ == "__main__":
    main()
