"""Reconstruct the installed extension set from the extension directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from orchext.core.errors import FilesystemError
from orchext.core.models import EXTENSION_DIR_DELIMITER, InstalledExtension
from orchext.utils.log import get_logger

logger = get_logger()


@dataclass
class InstalledSet:
    """Extensions found on disk.

    `versions` holds one version per name. Directories that lost to a later
    entry with the same name are kept in `shadowed`; entries that do not
    follow the `<name>_<version>` layout are kept in `strays`.
    """

    root: Path
    versions: Dict[str, str] = field(default_factory=dict)
    shadowed: List[InstalledExtension] = field(default_factory=list)
    strays: List[Path] = field(default_factory=list)

    def __contains__(self, name: object) -> bool:
        return name in self.versions

    def __len__(self) -> int:
        return len(self.versions)

    def get(self, name: str) -> Optional[str]:
        return self.versions.get(name)

    def path_for(self, name: str, version: str) -> Path:
        return self.root / InstalledExtension(name, version).dir_name

    def all_versions(self, name: str) -> List[str]:
        """Every version of `name` present on disk, shadowed ones included."""
        found = [item.version for item in self.shadowed if item.name == name]
        current = self.versions.get(name)
        if current is not None:
            found.append(current)
        return found


def split_dir_name(dir_name: str) -> Optional[Tuple[str, str]]:
    """Split `<name>_<version>` on the last delimiter, or None when malformed."""
    name, sep, version = dir_name.rpartition(EXTENSION_DIR_DELIMITER)
    if not sep or not name or not version:
        return None
    return name, version


def scan_extension_dir(extension_dir: Union[str, Path]) -> InstalledSet:
    """Build the installed set from the immediate subdirectories of `extension_dir`.

    Entries are visited in name order, so when one extension is present at two
    versions the lexically last directory wins.
    """
    root = Path(extension_dir)
    installed = InstalledSet(root=root)
    if not root.exists():
        return installed

    try:
        entries = sorted(root.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise FilesystemError(f"failed to read entries in extension directory {root}: {exc}", root) from exc

    for entry in entries:
        if not entry.is_dir():
            installed.strays.append(entry)
            continue
        parsed = split_dir_name(entry.name)
        if parsed is None:
            logger.debug("[cache] Ignoring malformed extension directory", extra={"path": str(entry)})
            installed.strays.append(entry)
            continue
        name, version = parsed
        previous = installed.versions.get(name)
        if previous is not None:
            logger.warning(
                "[cache] Extension %s is installed more than once; using %s over %s",
                name,
                version,
                previous,
                extra={"extension_dir": str(root)},
            )
            installed.shadowed.append(InstalledExtension(name, previous))
        installed.versions[name] = version

    logger.debug(
        "[cache] Scanned extension directory",
        extra={"path": str(root), "installed": len(installed.versions)},
    )
    return installed


__all__ = ["InstalledSet", "scan_extension_dir", "split_dir_name"]
