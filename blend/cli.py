"""brew-blend CLI -- install and remove "blends" (meta-formulae) in Homebrew.

Designed to run as a Homebrew external command::

    brew blend install amp-stack
"""

from __future__ import annotations

import functools

import click
from rich.markup import escape

from blend import __version__
from blend.brew.client import HomebrewClient, PackageManager
from blend.config import BlendSettings, load_settings
from blend.errors import BlendError
from blend.lifecycle import LifecycleOrchestrator
from blend.log import Consoles, configure_logging, make_consoles
from blend.models import BatchResult, DriftState
from blend.store import bootstrap


class BlendContext:
    """Per-invocation state, built lazily so ``--help`` never calls brew.

    Tests pass a ready-made instance as ``obj`` to inject settings and a
    fake package manager.
    """

    def __init__(
        self,
        settings: BlendSettings | None = None,
        package_manager: PackageManager | None = None,
        config_path: str | None = None,
    ):
        self._settings = settings
        self._package_manager = package_manager
        self._orchestrator: LifecycleOrchestrator | None = None
        self.config_path = config_path
        self.consoles: Consoles = make_consoles()

    @property
    def settings(self) -> BlendSettings:
        if self._settings is None:
            self._settings = load_settings(self.config_path)
        return self._settings

    @property
    def package_manager(self) -> PackageManager:
        if self._package_manager is None:
            self._package_manager = HomebrewClient(self.settings.brew)
        return self._package_manager

    @property
    def orchestrator(self) -> LifecycleOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = LifecycleOrchestrator(self.settings, self.package_manager)
        return self._orchestrator

    def ensure_installed(self) -> None:
        """Create the blend store on first use."""
        if bootstrap.ensure_installed(self.settings.root):
            self.consoles.status.print(f"Created blend store in '{escape(str(self.settings.root))}'")


pass_blend = click.make_pass_decorator(BlendContext)


def handle_errors(func):
    """Report a :class:`BlendError` on stderr and exit with its code."""

    @functools.wraps(func)
    def wrapper(blend: BlendContext, *args, **kwargs):
        try:
            return func(blend, *args, **kwargs)
        except BlendError as e:
            blend.consoles.err.print(f"[red]Error:[/] {escape(str(e))}")
            click.get_current_context().exit(e.exit_code)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--quiet", "-q", is_flag=True, help="Silence status output.")
@click.option("--verbose", "-v", is_flag=True, help="Log every package manager call.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML settings file.",
)
@click.pass_context
def main(ctx, quiet: bool, verbose: bool, config_path: str | None):
    """brew-blend -- install and remove "blends" (meta-formulae) in Homebrew.

    Blends are looked up in a 'BlendFormula' directory of every installed
    tap, pinned taps first. They are fed to 'brew bundle', so they use
    Brewfile syntax.

    Uninstalling removes the blend's formulae, casks and taps unless another
    installed blend declares them. Formulae are only removed once 'brew
    leaves' reports nothing depends on them; casks are removed without a
    dependency check. Other entries (such as 'mas' apps) are left alone.
    """
    configure_logging(quiet=quiet, verbose=verbose)
    if ctx.obj is None:
        ctx.obj = BlendContext(config_path=config_path)
    elif config_path:
        ctx.obj.config_path = config_path
    ctx.obj.consoles = make_consoles(quiet=quiet)


# ── Setup ────────────────────────────────────────────────────────────


@main.command()
@pass_blend
@handle_errors
def check(blend: BlendContext):
    """Check whether the blend store has been created."""
    bootstrap.check(blend.settings.root)
    blend.consoles.status.print("brew-blend is installed")


@main.command(name="install-self")
@pass_blend
@handle_errors
def install_self(blend: BlendContext):
    """Create the directory brew-blend keeps installed blends in.

    This happens automatically the first time another command runs.
    """
    root = blend.settings.root
    blend.consoles.status.print(f"Creating blend store in '{escape(str(root.parent))}'...")
    if bootstrap.install_self(root):
        blend.consoles.status.print("brew-blend installed successfully")
    else:
        blend.consoles.status.print("brew-blend is already installed")


@main.command(name="uninstall-self")
@pass_blend
@handle_errors
def uninstall_self(blend: BlendContext):
    """Remove the directory created by install-self."""
    if bootstrap.uninstall_self(blend.settings.root):
        blend.consoles.status.print("brew-blend uninstalled successfully")
    else:
        blend.consoles.status.print("brew-blend is not installed")


# ── Discovery ────────────────────────────────────────────────────────


@main.command(name="list")
@pass_blend
@handle_errors
def list_blends(blend: BlendContext):
    """List installed blends."""
    blend.ensure_installed()
    for name in blend.orchestrator.store.list():
        blend.consoles.out.print(escape(name))


@main.command()
@click.argument("names", nargs=-1, required=True)
@pass_blend
@handle_errors
def info(blend: BlendContext, names: tuple[str, ...]):
    """Print information about the given blends."""
    blend.ensure_installed()
    locator = blend.orchestrator.locator
    result = BatchResult()
    for name in names:
        try:
            result.results[name] = locator.info(name)
        except BlendError as e:
            result.failed[name] = e
            _report_failure(blend, name, e)
            continue
        blend.consoles.out.print(escape(result.results[name]).rstrip("\n"))
    _exit_with(result)


@main.command()
@click.argument("query", required=False, default="")
@pass_blend
@handle_errors
def search(blend: BlendContext, query: str):
    """Search all taps for blends whose name contains QUERY.

    Without a QUERY every available blend is listed.
    """
    blend.ensure_installed()
    found = False
    for hit in blend.orchestrator.locator.search(query):
        found = True
        blend.consoles.out.print(escape(hit.qualified_name))
    if not found:
        blend.consoles.status.print("[yellow]No matching blends found.[/]")


# ── Install / uninstall ──────────────────────────────────────────────


@main.command()
@click.argument("names", nargs=-1, required=True)
@pass_blend
@handle_errors
def install(blend: BlendContext, names: tuple[str, ...]):
    """Install the given blends (NAME or user/repo/NAME)."""
    blend.ensure_installed()
    result = blend.orchestrator.install_many(names)
    for name in result.succeeded:
        blend.consoles.status.print(f"Blend '{escape(name)}' [green]successfully installed[/]")
    for name, error in result.failed.items():
        _report_failure(blend, name, error)
    _exit_with(result)


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--blend-only",
    is_flag=True,
    help="Remove only the blend record, not any of its formulae, casks or taps.",
)
@pass_blend
@handle_errors
def uninstall(blend: BlendContext, names: tuple[str, ...], blend_only: bool):
    """Uninstall the given blends."""
    blend.ensure_installed()
    result = blend.orchestrator.uninstall_many(names, blend_only=blend_only)
    for name, report in result.results.items():
        if report.blend_only:
            blend.consoles.status.print(f"Blend '{escape(name)}' removed")
            continue
        blend.consoles.status.print(
            f"Blend '{escape(name)}' uninstalled: "
            f"{len(report.packages)} formula(e), {len(report.casks)} cask(s), "
            f"{len(report.repositories)} tap(s) removed"
        )
        if report.warnings:
            blend.consoles.status.print(
                f"  [yellow]{len(report.warnings)} component(s) could not be removed[/]"
            )
    for name, error in result.failed.items():
        _report_failure(blend, name, error)
    _exit_with(result)


# ── Update / upgrade ─────────────────────────────────────────────────


@main.command()
@pass_blend
@handle_errors
def update(blend: BlendContext):
    """Print the names of installed blends that have changed upstream."""
    blend.ensure_installed()
    orchestrator = blend.orchestrator
    if not orchestrator.store.list():
        blend.consoles.status.print("No blends installed")
        return

    summary = orchestrator.list_drifted()
    for name in summary.orphaned:
        _report_orphan(blend, name)
    for name in summary.drifted:
        blend.consoles.out.print(escape(name))
    if not summary.updated:
        blend.consoles.status.print("All blends up-to-date")
    elif summary.up_to_date:
        blend.consoles.status.print(f"{len(summary.up_to_date)} other blend(s) up-to-date")


@main.command()
@click.argument("names", nargs=-1)
@pass_blend
@handle_errors
def upgrade(blend: BlendContext, names: tuple[str, ...]):
    """Upgrade outdated blends (all installed blends if none are named)."""
    blend.ensure_installed()
    orchestrator = blend.orchestrator
    if not orchestrator.store.list():
        blend.consoles.status.print("No blends installed")
        return

    result = orchestrator.upgrade_many(names)
    for name, report in result.results.items():
        if report.state == DriftState.DRIFTED:
            blend.consoles.status.print(f"Blend '{escape(name)}' [green]successfully upgraded[/]")
        elif report.state == DriftState.ORPHANED:
            _report_orphan(blend, name)
        elif names:
            blend.consoles.status.print(escape(report.summary()))
    for name, error in result.failed.items():
        _report_failure(blend, name, error)
    _exit_with(result)


def _report_failure(blend: BlendContext, name: str, error: Exception) -> None:
    blend.consoles.err.print(f"[red]Error:[/] {escape(name)}: {escape(str(error))}")


def _report_orphan(blend: BlendContext, name: str) -> None:
    err = blend.consoles.err
    err.print(f"[yellow]Blend '{escape(name)}' has been removed in the upstream tap[/]")
    err.print("This blend will no longer update, but you won't be affected otherwise")
    err.print(
        "You can safely remove this blend with "
        f"'brew blend uninstall --blend-only {escape(name)}' without affecting any existing formulae"
    )


def _exit_with(result: BatchResult) -> None:
    if not result.ok:
        click.get_current_context().exit(result.exit_code)


if __name__ == "__main__":
    main()
