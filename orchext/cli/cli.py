"""Main CLI entry point for Orchext.

This module provides the command-line interface for installing and
maintaining Universal Orchestrator extensions.
"""

from pathlib import Path
from typing import Callable, List, Optional, Tuple

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from orchext import __version__
from orchext.cli.ui.choice import AutoConfirmer, TerminalConfirmer
from orchext.core.config import InstallerSettings, load_settings
from orchext.core.errors import ExtensionError
from orchext.core.fetcher import GithubReleaseFetcher
from orchext.core.installer import ExtensionInstaller
from orchext.core.transport import HttpxTransport
from orchext.utils.byte_source import read_sources
from orchext.utils.log import enable_debug_logging, get_logger

console = Console()
logger = get_logger()


def _split_extension_values(values: Tuple[str, ...]) -> List[str]:
    """Flatten repeated and comma-separated `-e` values."""
    extensions: List[str] = []
    for value in values:
        extensions.extend(part.strip() for part in value.split(",") if part.strip())
    return extensions


def _resolve_settings(token: Optional[str], org: Optional[str], out: Optional[str] = None) -> InstallerSettings:
    return load_settings().with_overrides(github_token=token, github_org=org, extensions_dir=out)


def _run_guarded(action: Callable[[], None]) -> None:
    try:
        action()
    except ExtensionError as exc:
        logger.debug("[cli] Command failed: %s: %s", type(exc).__name__, exc)
        raise click.ClickException(str(exc)) from exc


def _token_option(func: Callable) -> Callable:
    return click.option(
        "-t",
        "--token",
        help="Token used for GitHub authentication - required for private repositories",
    )(func)


def _org_option(func: Callable) -> Callable:
    return click.option(
        "--org",
        help="GitHub organization to download extensions from. Default is keyfactor.",
    )(func)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write debug logs to this file",
)
def cli(debug: bool, log_file: Optional[Path]) -> None:
    """Orchext - download and configure Universal Orchestrator extensions."""
    if debug:
        enable_debug_logging(log_file)
    elif log_file:
        logger.attach_file_handler(log_file)


@click.command(name="ext")
@_token_option
@_org_option
@click.option(
    "-o",
    "--out",
    help="Path to the extensions directory to download extensions into. Default is ./extensions",
)
@click.option(
    "-c",
    "--config",
    "config_sources",
    multiple=True,
    help="Filename, directory, or URL to an extension configuration file ('-' reads stdin)",
)
@click.option(
    "-e",
    "--extension",
    "extension_values",
    multiple=True,
    help=(
        "Extensions to download, as <extension name>@<version>. If no version is "
        "specified, the latest official version will be downloaded."
    ),
)
@click.option("-y", "--confirm", "auto_confirm", is_flag=True, help="Automatically confirm the download of extensions")
@click.option("-u", "--update", "upgrade", is_flag=True, help="Update existing extensions if they are out of date.")
@click.option(
    "-P",
    "--prune",
    is_flag=True,
    help=(
        "Remove extensions from the extensions directory that are not in the "
        "extension configuration file or specified on the command line"
    ),
)
def ext_cmd(
    token: Optional[str],
    org: Optional[str],
    out: Optional[str],
    config_sources: Tuple[str, ...],
    extension_values: Tuple[str, ...],
    auto_confirm: bool,
    upgrade: bool,
    prune: bool,
) -> None:
    """Download and configure extensions for the Universal Orchestrator.

    Extensions come from a configuration file (-c) or from -e arguments.
    With neither, the available extensions are offered for selection.
    """
    extensions = _split_extension_values(extension_values)
    if config_sources and extensions:
        raise click.UsageError("only one of --config or --extension can be provided")
    interactive = not config_sources and not extensions

    settings = _resolve_settings(token, org, out)
    confirmer = AutoConfirmer(True) if auto_confirm and not interactive else TerminalConfirmer(console=console)

    installer = (
        ExtensionInstaller(settings, confirmer=confirmer, console=console)
        .set_extension_dir(settings.extensions_dir)
        .set_interactive(interactive)
        .set_request(extensions)
        .set_auto_confirm(auto_confirm)
        .set_upgrade(upgrade)
        .set_prune(prune)
    )
    if config_sources:
        with HttpxTransport(settings.github_token, timeout=settings.timeout_seconds) as transport:
            try:
                installer.load_request_from_bytes(read_sources(config_sources, transport=transport))
            except ExtensionError as exc:
                installer.add_error(exc)

    def _install() -> None:
        try:
            installer.pre_flight()
        except ExtensionError as exc:
            raise click.ClickException(f"extension installer preflight failed: {exc}") from exc
        result = installer.run()
        if result.cancelled:
            return
        console.print(
            f"[green]Done.[/green] {len(result.installed)} installed, "
            f"{len(result.removed)} removed, {len(result.unchanged)} unchanged."
        )

    try:
        _run_guarded(_install)
    finally:
        installer.close()


@click.command(name="list")
@_token_option
@_org_option
def list_cmd(token: Optional[str], org: Optional[str]) -> None:
    """List available extensions and their latest versions."""
    settings = _resolve_settings(token, org)

    def _list() -> None:
        with HttpxTransport(settings.github_token, timeout=settings.timeout_seconds) as transport:
            fetcher = GithubReleaseFetcher.from_settings(settings, transport)
            catalog = fetcher.get_extension_list()
        table = Table(box=box.SIMPLE_HEAVY)
        table.add_column("Extension", style="cyan")
        table.add_column("Latest", style="dim")
        for name in sorted(catalog):
            table.add_row(escape(name), escape(catalog[name]))
        console.print(table)

    _run_guarded(_list)


@click.command(name="versions")
@click.argument("name")
@_token_option
@_org_option
def versions_cmd(name: str, token: Optional[str], org: Optional[str]) -> None:
    """List published versions of an extension, newest first."""
    settings = _resolve_settings(token, org)

    def _versions() -> None:
        with HttpxTransport(settings.github_token, timeout=settings.timeout_seconds) as transport:
            fetcher = GithubReleaseFetcher.from_settings(settings, transport)
            versions = fetcher.list_versions(name)
        if not versions:
            console.print(f"[yellow]No releases found for {escape(name)}[/yellow]")
            return
        for version in versions:
            console.print(version, markup=False, highlight=False)

    _run_guarded(_versions)


@click.command(name="version")
def version_cmd() -> None:
    """Show version information."""
    console.print(f"Orchext version {__version__}")


cli.add_command(ext_cmd)
cli.add_command(ext_cmd, name="extensions")
cli.add_command(list_cmd)
cli.add_command(versions_cmd)
cli.add_command(version_cmd)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
