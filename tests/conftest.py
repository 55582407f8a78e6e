"""Pytest configuration and fixtures for all tests."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import pytest
from rich.console import Console

from orchext.core.errors import AssetMissingError, NoReleasesError


def make_zip(entries: Mapping[str, str], modes: Optional[Mapping[str, int]] = None) -> bytes:
    """Build an in-memory zip archive; names ending in `/` become directories."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            info = zipfile.ZipInfo(name)
            if modes and name in modes:
                info.external_attr = modes[name] << 16
            archive.writestr(info, content)
    return buffer.getvalue()


class FakeFetcher:
    """In-memory stand-in for GithubReleaseFetcher."""

    def __init__(
        self,
        releases: Dict[str, List[str]],
        archives: Optional[Dict[Tuple[str, str], bytes]] = None,
    ):
        self.releases = releases
        self.archives = archives or {}
        self.downloads: List[Tuple[str, str]] = []

    def list_versions(self, name: str) -> List[str]:
        return list(self.releases.get(name, []))

    def get_first(self, name: str) -> str:
        versions = self.releases.get(name)
        if not versions:
            raise NoReleasesError(name)
        return versions[0]

    def exists(self, name: str, version: str) -> bool:
        return version in self.releases.get(name, [])

    def get_extension_list(self) -> Dict[str, str]:
        return {name: versions[0] for name, versions in self.releases.items() if versions}

    def download(self, name: str, version: str) -> bytes:
        if version not in self.releases.get(name, []):
            raise AssetMissingError(name, version)
        self.downloads.append((name, version))
        payload = self.archives.get((name, version))
        if payload is not None:
            return payload
        return make_zip(
            {
                "manifest.json": f'{{"name": "{name}", "version": "{version}"}}',
                "lib/": "",
                "lib/extension.dll": f"{name}-{version}",
            }
        )


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(output: io.StringIO) -> Console:
    return Console(file=output, width=200, color_system=None)


@pytest.fixture
def extension_dir(tmp_path: Path) -> Path:
    path = tmp_path / "extensions"
    path.mkdir()
    return path


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point HOME at a temp dir and clear settings environment variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "GITHUB_TOKEN",
        "ORCHEXT_GITHUB_TOKEN",
        "ORCHEXT_GITHUB_ORG",
        "ORCHEXT_EXTENSIONS_DIR",
        "ORCHEXT_API_BASE",
        "ORCHEXT_DOWNLOAD_BASE",
        "ORCHEXT_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    return home
