"""Plan and apply the changes that converge the extension directory."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from orchext.core.archive import DEFAULT_FILE_PERMISSIONS, extract_archive
from orchext.core.directory_cache import InstalledSet
from orchext.core.errors import ExtensionError, FilesystemError
from orchext.core.models import InstalledExtension
from orchext.utils.log import get_logger

logger = get_logger()

RuntimeLog = Callable[[str], None]


class ReleaseSource(Protocol):
    """The part of the fetcher the reconciler depends on."""

    def get_first(self, name: str) -> str: ...

    def download(self, name: str, version: str) -> bytes: ...


class RemovalReason(str, Enum):
    REPLACED = "replaced"
    UNREQUESTED = "unrequested"
    STRAY = "stray"


@dataclass(frozen=True)
class Removal:
    path: Path
    reason: RemovalReason
    extension: Optional[InstalledExtension] = None

    def describe(self) -> str:
        if self.extension is None:
            return self.path.name
        return f"{self.extension.name}: {self.extension.version}"


@dataclass
class ReconcilePlan:
    removals: List[Removal] = field(default_factory=list)
    installations: List[InstalledExtension] = field(default_factory=list)
    unchanged: List[InstalledExtension] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.removals and not self.installations


def refresh_upgrades(
    requested: Dict[str, str],
    installed: InstalledSet,
    source: ReleaseSource,
) -> Dict[str, str]:
    """Add the newest version of every installed extension not already requested.

    Mutates and returns `requested`.
    """
    for name in installed.versions:
        if name in requested:
            continue
        requested[name] = source.get_first(name)
        logger.debug(
            "[reconciler] Upgrade target resolved",
            extra={"extension": name, "installed": installed.versions[name], "target": requested[name]},
        )
    return requested


def plan_reconcile(
    requested: Mapping[str, str],
    installed: InstalledSet,
    *,
    prune: bool = False,
) -> ReconcilePlan:
    """Compute removals and installations for `requested` against `installed`.

    Replaced versions are always removed. Unrequested extensions and stray
    entries are removed only when `prune` is set.
    """
    plan = ReconcilePlan()

    for name in installed.versions:
        target = requested.get(name)
        for version in installed.all_versions(name):
            extension = InstalledExtension(name, version)
            path = installed.path_for(name, version)
            if target is None:
                if prune:
                    plan.removals.append(Removal(path, RemovalReason.UNREQUESTED, extension))
            elif version != target:
                plan.removals.append(Removal(path, RemovalReason.REPLACED, extension))

    if prune:
        plan.removals.extend(Removal(path, RemovalReason.STRAY) for path in installed.strays)

    for name, version in requested.items():
        extension = InstalledExtension(name, version)
        if installed.get(name) == version:
            plan.unchanged.append(extension)
        else:
            plan.installations.append(extension)

    logger.debug(
        "[reconciler] Planned changes",
        extra={
            "removals": len(plan.removals),
            "installations": len(plan.installations),
            "unchanged": len(plan.unchanged),
            "prune": prune,
        },
    )
    return plan


def remove_path(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
    except OSError as exc:
        raise FilesystemError(f"failed to remove extension directory {path}: {exc}", path) from exc


def apply_removals(plan: ReconcilePlan, runtime_log: Optional[RuntimeLog] = None) -> None:
    for removal in plan.removals:
        if runtime_log is not None:
            runtime_log(f"Removing {removal.path.name}")
        logger.info(
            "[reconciler] Removing %s",
            removal.path,
            extra={"reason": removal.reason.value},
        )
        remove_path(removal.path)


def install_extension(
    extension: InstalledExtension,
    extension_dir: Path,
    source: ReleaseSource,
    runtime_log: Optional[RuntimeLog] = None,
) -> Path:
    """Download, unpack and clean up one extension; return its directory.

    A failed extraction removes the partial directory before the error propagates.
    """
    zip_path = extension_dir / extension.zip_name
    destination = extension_dir / extension.dir_name

    if runtime_log is not None:
        runtime_log(f"Downloading {zip_path}")
    payload = source.download(extension.name, extension.version)

    try:
        fd = os.open(zip_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, DEFAULT_FILE_PERMISSIONS)
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
    except OSError as exc:
        raise FilesystemError(f"failed to write extension zip file to disk: {exc}", zip_path) from exc

    if runtime_log is not None:
        runtime_log(f"Unzipping {zip_path} to {destination}")
    try:
        extract_archive(zip_path, destination)
    except ExtensionError:
        logger.warning(
            "[reconciler] Extraction failed; discarding %s",
            destination,
            extra={"extension": extension.name, "version": extension.version},
        )
        remove_path(destination)
        remove_path(zip_path)
        raise

    try:
        zip_path.unlink()
    except OSError as exc:
        raise FilesystemError(f"failed to delete extension zip file: {exc}", zip_path) from exc
    return destination


def apply_installations(
    plan: ReconcilePlan,
    extension_dir: Path,
    source: ReleaseSource,
    runtime_log: Optional[RuntimeLog] = None,
) -> List[Path]:
    installed: List[Path] = []
    for extension in plan.installations:
        installed.append(install_extension(extension, extension_dir, source, runtime_log))
    return installed


__all__ = [
    "ReconcilePlan",
    "ReleaseSource",
    "Removal",
    "RemovalReason",
    "apply_installations",
    "apply_removals",
    "install_extension",
    "plan_reconcile",
    "refresh_upgrades",
    "remove_path",
]
