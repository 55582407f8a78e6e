"""Read configuration bytes from files, directories, standard input and URLs."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Protocol, Sequence

from orchext.core.errors import FilesystemError, ParseError
from orchext.core.transport import HttpxTransport, Transport
from orchext.utils.log import get_logger

logger = get_logger()

STDIN_MARKER = "-"
SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml")


class ByteSource(Protocol):
    def read(self) -> bytes: ...


@dataclass(frozen=True)
class PathSource:
    """A file, or a directory whose supported files are read in name order."""

    path: Path

    def _files(self) -> List[Path]:
        if not self.path.is_dir():
            return [self.path]
        return sorted(
            child
            for child in self.path.iterdir()
            if child.is_file() and child.suffix.lower() in SUPPORTED_SUFFIXES
        )

    def read(self) -> bytes:
        chunks: List[bytes] = []
        try:
            for file_path in self._files():
                chunks.append(file_path.read_bytes())
        except OSError as exc:
            raise FilesystemError(f"failed to read {self.path}: {exc}", self.path) from exc
        return b"".join(chunks)


@dataclass(frozen=True)
class StdinSource:
    stream: Optional[BinaryIO] = None

    def read(self) -> bytes:
        stream = self.stream if self.stream is not None else sys.stdin.buffer
        data = stream.read()
        logger.debug("[source] Read %d bytes from stdin", len(data))
        return data


@dataclass(frozen=True)
class UrlSource:
    url: str
    transport: Transport

    def read(self) -> bytes:
        return self.transport.get(self.url)


def is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def validate_sources(sources: Sequence[str]) -> None:
    for source in sources:
        if not source:
            raise ParseError("filename cannot be empty")


def build_sources(
    sources: Iterable[str],
    *,
    transport: Optional[Transport] = None,
    stdin: Optional[BinaryIO] = None,
) -> List[ByteSource]:
    """Turn raw `-`, URL and path arguments into byte sources.

    URL arguments need a `transport`; the caller owns and closes it.
    """
    items = list(sources)
    validate_sources(items)
    built: List[ByteSource] = []
    for source in items:
        if source == STDIN_MARKER:
            built.append(StdinSource(stdin))
        elif is_url(source):
            if transport is None:
                raise ValueError(f"a transport is required to read {source}")
            built.append(UrlSource(source, transport))
        else:
            built.append(PathSource(Path(source).expanduser()))
    return built


def read_sources(
    sources: Iterable[str],
    *,
    transport: Optional[Transport] = None,
    stdin: Optional[BinaryIO] = None,
) -> bytes:
    """Read every source in order and return the concatenated bytes.

    No sources, or empty sources, yield empty bytes. Without a `transport`,
    URL sources are read through a client that is closed before returning.
    """
    items = list(sources)
    if transport is None and any(is_url(source) for source in items):
        with HttpxTransport() as owned:
            return read_sources(items, transport=owned, stdin=stdin)
    return b"".join(source.read() for source in build_sources(items, transport=transport, stdin=stdin))


__all__ = [
    "ByteSource",
    "PathSource",
    "STDIN_MARKER",
    "SUPPORTED_SUFFIXES",
    "StdinSource",
    "UrlSource",
    "build_sources",
    "read_sources",
    "validate_sources",
]
