"""Safe extraction of release archives."""

from __future__ import annotations

import os
import shutil
import sys
import zipfile
import zlib
from pathlib import Path
from typing import Union

from orchext.core.errors import FilesystemError, PathTraversalError
from orchext.utils.log import get_logger

logger = get_logger()

DIRECTORY_PERMISSIONS = 0o755
DEFAULT_FILE_PERMISSIONS = 0o644
# setuid, setgid and sticky bits from archive metadata are dropped.
PERMISSION_BITS = 0o777

# Raised while reading or writing one entry; corrupt or unsupported entries
# surface as zlib, EOF and runtime errors rather than BadZipFile.
_ENTRY_ERRORS = (OSError, zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError)

PathLike = Union[str, Path]


def _entry_mode(info: zipfile.ZipInfo) -> int:
    mode = (info.external_attr >> 16) & PERMISSION_BITS
    return mode or DEFAULT_FILE_PERMISSIONS


def resolve_entry_path(destination: PathLike, entry_name: str) -> Path:
    """Return the cleaned target path of an archive entry.

    Raises PathTraversalError when the entry would land outside `destination`.
    """
    if "\\" in entry_name and not sys.platform.startswith("win"):
        raise PathTraversalError(entry_name, destination)
    base = os.path.normpath(os.path.abspath(destination))
    target = os.path.normpath(os.path.join(base, entry_name))
    if not target.startswith(base + os.sep):
        raise PathTraversalError(entry_name, destination)
    return Path(target)


def extract_archive(archive_path: PathLike, destination: PathLike) -> Path:
    """Extract a zip archive into `destination`, refusing entries that escape it.

    Extraction stops at the first offending entry; files written before it
    stay on disk and the caller decides whether to discard the destination.
    """
    destination = Path(destination)
    logger.debug(
        "[archive] Extracting",
        extra={"archive": str(archive_path), "destination": str(destination)},
    )
    try:
        archive = zipfile.ZipFile(archive_path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise FilesystemError(f"failed to open zip file at {str(archive_path)!r}: {exc}", archive_path) from exc

    with archive:
        try:
            destination.mkdir(mode=DIRECTORY_PERMISSIONS, parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"failed to create directory {destination}: {exc}", destination) from exc

        for info in archive.infolist():
            target = resolve_entry_path(destination, info.filename)
            logger.debug("[archive] unzipping file", extra={"path": str(target)})
            try:
                if info.is_dir():
                    target.mkdir(mode=DIRECTORY_PERMISSIONS, parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(mode=DIRECTORY_PERMISSIONS, parents=True, exist_ok=True)
                with archive.open(info) as source:
                    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _entry_mode(info))
                    with os.fdopen(fd, "wb") as out:
                        shutil.copyfileobj(source, out)
            except _ENTRY_ERRORS as exc:
                raise FilesystemError(f"failed to extract {info.filename} to {target}: {exc}", target) from exc

    return destination


__all__ = [
    "DEFAULT_FILE_PERMISSIONS",
    "DIRECTORY_PERMISSIONS",
    "PERMISSION_BITS",
    "extract_archive",
    "resolve_entry_path",
]
