from __future__ import annotations

import io
from pathlib import Path
from typing import List, Optional

import pytest

from orchext.core.errors import FilesystemError, ParseError
from orchext.utils.byte_source import PathSource, StdinSource, UrlSource, build_sources, read_sources


class StaticTransport:
    def __init__(self, body: bytes):
        self.body = body
        self.urls: List[str] = []

    def get(self, url: str, *, accept: Optional[str] = None) -> bytes:
        self.urls.append(url)
        return self.body


def test_read_file_source(tmp_path: Path) -> None:
    config = tmp_path / "extensions.yaml"
    config.write_bytes(b"a: 1.0.0\n")

    assert read_sources([str(config)]) == b"a: 1.0.0\n"


def test_directory_source_reads_supported_files_in_order(tmp_path: Path) -> None:
    (tmp_path / "b.json").write_bytes(b'{"b": "2.0.0"}\n')
    (tmp_path / "a.yaml").write_bytes(b"a: 1.0.0\n")
    (tmp_path / "notes.txt").write_bytes(b"ignored\n")
    (tmp_path / "sub.yml").mkdir()

    assert PathSource(tmp_path).read() == b'a: 1.0.0\n{"b": "2.0.0"}\n'


def test_missing_file_is_filesystem_error(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        read_sources([str(tmp_path / "missing.yaml")])


def test_empty_source_name_is_rejected() -> None:
    with pytest.raises(ParseError, match="filename cannot be empty"):
        read_sources(["config.yaml", ""])


def test_stdin_and_url_sources(tmp_path: Path) -> None:
    transport = StaticTransport(b"c: 3.0.0\n")
    sources = build_sources(
        ["-", "https://example.com/extensions.yaml"],
        transport=transport,
        stdin=io.BytesIO(b"a: 1.0.0\n"),
    )

    assert isinstance(sources[0], StdinSource)
    assert isinstance(sources[1], UrlSource)
    assert b"".join(source.read() for source in sources) == b"a: 1.0.0\nc: 3.0.0\n"
    assert transport.urls == ["https://example.com/extensions.yaml"]


def test_no_sources_read_as_empty() -> None:
    assert read_sources([]) == b""


def test_url_sources_need_a_transport() -> None:
    with pytest.raises(ValueError, match="a transport is required"):
        build_sources(["https://example.com/extensions.yaml"])
