"""Extension installer: request assembly, pre-flight validation and the install run.

Typical use::

    installer = (
        ExtensionInstaller()
        .set_extension_dir("./extensions")
        .set_request(["iis-orchestrator@2.2.2", "f5-orchestrator"])
        .set_auto_confirm(True)
    )
    installer.pre_flight()
    installer.run()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import yaml
from rich.console import Console
from rich.markup import escape

from orchext.core.config import DEFAULT_EXTENSIONS_DIR, InstallerSettings
from orchext.core.directory_cache import InstalledSet, scan_extension_dir
from orchext.core.errors import (
    ExtensionError,
    MissingDirectoryError,
    MissingVersionError,
    ParseError,
    UnknownExtensionError,
)
from orchext.core.fetcher import GithubReleaseFetcher
from orchext.core.models import InstalledExtension, RequestSet, VersionRequest, parse_extension_string
from orchext.core.reconciler import (
    ReconcilePlan,
    apply_installations,
    apply_removals,
    plan_reconcile,
    refresh_upgrades,
)
from orchext.core.transport import HttpxTransport
from orchext.utils.log import get_logger

if TYPE_CHECKING:
    from orchext.cli.ui.choice import Confirmer

logger = get_logger()

CONFIRM_MESSAGE = "Install extensions?"
CONFIRM_HEADER = (
    "Installing extensions could overwrite existing extensions and configurations. "
    "The following changes will be made:\n"
)
SELECT_MESSAGE = "Select the extensions to install - the most recent versions are displayed"


@dataclass
class RunResult:
    cancelled: bool = False
    removed: List[Path] = field(default_factory=list)
    installed: List[Path] = field(default_factory=list)
    unchanged: List[InstalledExtension] = field(default_factory=list)


def parse_request_document(data: bytes) -> RequestSet:
    """Parse a flat YAML/JSON mapping of extension names to versions.

    Scalars are read as strings, so `1.10` stays `1.10`.
    """
    if not data or not data.strip():
        return {}
    try:
        document = yaml.load(data, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise ParseError(f"error unmarshalling extension config file: {exc}") from exc
    if document is None or document == "":
        return {}
    if not isinstance(document, dict):
        raise ParseError("extension config file must be a mapping of extension names to versions")
    requests: RequestSet = {}
    for raw_name, raw_version in document.items():
        if isinstance(raw_version, (dict, list)):
            raise ParseError(f"invalid version for extension {raw_name}: expected a single version")
        name = str(raw_name).strip()
        if not name:
            raise ParseError("extension config file contains an empty extension name")
        requests[name] = VersionRequest.parse(raw_version)
    return requests


class ExtensionInstaller:
    """Converges an extension directory to a requested set of extensions.

    Setters return the installer so calls can be chained. Errors found while
    assembling the request are collected and surface from `pre_flight`.
    """

    def __init__(
        self,
        settings: Optional[InstallerSettings] = None,
        *,
        fetcher: Optional[GithubReleaseFetcher] = None,
        confirmer: Optional["Confirmer"] = None,
        console: Optional[Console] = None,
    ):
        self.settings = settings or InstallerSettings()
        self.extension_dir = Path(self.settings.extensions_dir)
        self.interactive = False
        self.requires_confirmation = True
        self.upgrade = False
        self.prune = False
        self.console = console or Console()
        self._fetcher = fetcher
        self._transport: Optional[HttpxTransport] = None
        self._confirmer = confirmer
        self._requests: RequestSet = {}
        self._resolved: Dict[str, str] = {}
        self._errors: List[ExtensionError] = []
        self._preflight_done = False

    # Builder setters

    def set_request(self, extension_strings: Iterable[str]) -> "ExtensionInstaller":
        for extension_string in extension_strings:
            try:
                extension = parse_extension_string(extension_string)
            except ParseError as exc:
                self._errors.append(exc)
                continue
            self._requests[extension.name] = extension.version
        return self

    def load_request_from_bytes(self, data: bytes) -> "ExtensionInstaller":
        try:
            self._requests.update(parse_request_document(data))
        except ParseError as exc:
            self._errors.append(exc)
        return self

    def add_error(self, error: ExtensionError) -> "ExtensionInstaller":
        """Record a setup failure (for example an unreadable config source)."""
        self._errors.append(error)
        return self

    def set_extension_dir(self, path: Optional[str | Path]) -> "ExtensionInstaller":
        self.extension_dir = Path(path) if path else Path(DEFAULT_EXTENSIONS_DIR)
        return self

    def set_interactive(self, interactive: bool) -> "ExtensionInstaller":
        self.interactive = interactive
        return self

    def set_auto_confirm(self, auto_confirm: bool) -> "ExtensionInstaller":
        self.requires_confirmation = not auto_confirm
        return self

    def set_upgrade(self, upgrade: bool) -> "ExtensionInstaller":
        self.upgrade = upgrade
        return self

    def set_prune(self, prune: bool) -> "ExtensionInstaller":
        self.prune = prune
        return self

    def set_credential(self, token: Optional[str]) -> "ExtensionInstaller":
        self._configure(github_token=token)
        return self

    def set_organization(self, org: Optional[str]) -> "ExtensionInstaller":
        self._configure(github_org=org)
        return self

    def set_confirmer(self, confirmer: "Confirmer") -> "ExtensionInstaller":
        self._confirmer = confirmer
        return self

    def _configure(self, **overrides: Optional[str]) -> None:
        if self._fetcher is not None:
            raise RuntimeError("fetcher settings cannot change after the fetcher is created")
        self.settings = self.settings.with_overrides(**overrides)

    # Collaborators

    @property
    def fetcher(self) -> GithubReleaseFetcher:
        if self._fetcher is None:
            self._transport = HttpxTransport(
                self.settings.github_token,
                timeout=self.settings.timeout_seconds,
            )
            self._fetcher = GithubReleaseFetcher.from_settings(self.settings, self._transport)
        return self._fetcher

    def close(self) -> None:
        """Release the HTTP client created for this installer, if any."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    @property
    def confirmer(self) -> "Confirmer":
        if self._confirmer is None:
            from orchext.cli.ui.choice import TerminalConfirmer

            self._confirmer = TerminalConfirmer(console=self.console)
        return self._confirmer

    @property
    def requested(self) -> Dict[str, str]:
        """Resolved name -> version mapping (populated by `pre_flight`)."""
        return dict(self._resolved)

    @property
    def pending_requests(self) -> RequestSet:
        return dict(self._requests)

    def _runtime_log(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False)

    def _print_error(self, error: Exception) -> None:
        self.console.print(f"[red]Error: {escape(str(error))}[/red]")

    # Pre-flight

    def _resolve_requests(self) -> Dict[str, str]:
        resolved: Dict[str, str] = {}
        for name, request in self._requests.items():
            if request.is_latest:
                resolved[name] = self.fetcher.get_first(name)
                logger.debug(
                    "[installer] Resolved latest version",
                    extra={"extension": name, "version": resolved[name]},
                )
                continue
            version = request.exact or ""
            if not version:
                raise MissingVersionError(name)
            if not self.fetcher.exists(name, version):
                raise UnknownExtensionError(name, version)
            resolved[name] = version
        return resolved

    def pre_flight(self) -> Dict[str, str]:
        """Validate the request and resolve `latest` to concrete versions.

        Returns the resolved request. Raises the first collected setup error,
        after reporting every other one.
        """
        errors, self._errors = self._errors, []
        if errors:
            for error in errors[1:]:
                self._print_error(error)
            raise errors[0]

        self._resolved = self._resolve_requests()

        if not self.extension_dir.is_dir():
            raise MissingDirectoryError(self.extension_dir)

        if self.upgrade:
            refresh_upgrades(self._resolved, scan_extension_dir(self.extension_dir), self.fetcher)

        self._preflight_done = True
        logger.info(
            "[installer] Pre-flight complete",
            extra={
                "extensions": len(self._resolved),
                "extension_dir": str(self.extension_dir),
                "upgrade": self.upgrade,
                "prune": self.prune,
            },
        )
        return self.requested

    # Run

    def _prompt_for_extensions(self, installed: InstalledSet) -> None:
        catalog = self.fetcher.get_extension_list()

        def describe(name: str) -> str:
            description = catalog.get(name, "")
            current = installed.get(name)
            if current is not None:
                description = f"{description} (currently {current})"
            return description

        selected = self.confirmer.multi_select(SELECT_MESSAGE, sorted(catalog), describe)
        for name in selected:
            if name in catalog:
                self._resolved[name] = catalog[name]

    def build_summary(self, plan: ReconcilePlan, installed: InstalledSet) -> str:
        lines = [CONFIRM_HEADER.rstrip("\n")]
        for extension in plan.unchanged:
            lines.append(f"{extension.name} @ {extension.version} is already installed.")
        for extension in plan.installations:
            current = installed.get(extension.name)
            version_string = extension.version if current is None else f"{current} -> {extension.version}"
            lines.append(f"Install {extension.name}: {version_string}")
        for removal in plan.removals:
            if removal.extension is not None and removal.extension.name in self._resolved:
                continue
            lines.append(f"Remove {removal.describe()}")
        return "\n".join(lines) + "\n"

    def run(self) -> RunResult:
        """Converge the extension directory to the requested set.

        Stops at the first error; work already done is left in place.
        """
        if not self._preflight_done:
            self.pre_flight()

        installed = scan_extension_dir(self.extension_dir)

        if self.interactive and not self.upgrade:
            self._prompt_for_extensions(installed)

        if self.upgrade:
            refresh_upgrades(self._resolved, installed, self.fetcher)

        plan = plan_reconcile(self._resolved, installed, prune=self.prune)

        if self.requires_confirmation:
            summary = self.build_summary(plan, installed)
            logger.debug("[installer] Confirmation summary", extra={"summary": summary})
            if not self.confirmer.confirm(CONFIRM_MESSAGE, summary):
                logger.info("[installer] Action cancelled by user")
                self._runtime_log("Action cancelled by user")
                return RunResult(cancelled=True)

        result = RunResult(unchanged=list(plan.unchanged))
        apply_removals(plan, self._runtime_log)
        result.removed = [removal.path for removal in plan.removals]

        for extension in plan.unchanged:
            self._runtime_log(f"Extension {extension.name}:{extension.version} is already installed")

        result.installed = apply_installations(plan, self.extension_dir, self.fetcher, self._runtime_log)
        logger.info(
            "[installer] Run complete",
            extra={
                "removed": len(result.removed),
                "installed": len(result.installed),
                "unchanged": len(result.unchanged),
            },
        )
        return result


__all__ = [
    "CONFIRM_MESSAGE",
    "ExtensionInstaller",
    "RunResult",
    "SELECT_MESSAGE",
    "parse_request_document",
]
