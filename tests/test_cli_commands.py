"""Tests for the `orchext` command group."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from conftest import FakeFetcher
from orchext import __version__
from orchext.cli import cli as cli_module
from orchext.core.fetcher import GithubReleaseFetcher
from orchext.core.transport import HttpxTransport


@pytest.fixture
def fake_fetcher(monkeypatch: pytest.MonkeyPatch, isolated_env: Path) -> FakeFetcher:
    fetcher = FakeFetcher({"a-orchestrator": ["2.0.0", "1.0.0"], "b-pam": ["0.9.0"]})
    monkeypatch.setattr(
        GithubReleaseFetcher,
        "from_settings",
        classmethod(lambda cls, settings, transport: fetcher),
    )
    return fetcher


def _run_cli(args: list[str], input: str | None = None):
    runner = CliRunner()
    return runner.invoke(cli_module.cli, args, input=input)


def test_version_command() -> None:
    result = _run_cli(["version"])
    assert result.exit_code == 0
    assert f"Orchext version {__version__}" in result.output


def test_config_and_extension_are_exclusive(tmp_path: Path, isolated_env: Path) -> None:
    result = _run_cli(["ext", "-c", str(tmp_path / "x.yaml"), "-e", "a@1.0.0"])
    assert result.exit_code == 2
    assert "only one of --config or --extension can be provided" in result.output


def test_ext_installs_requested_extensions(tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
    out = tmp_path / "extensions"
    out.mkdir()

    result = _run_cli(["ext", "-e", "a-orchestrator@1.0.0,b-pam", "-o", str(out), "-y"])

    assert result.exit_code == 0, result.output
    assert sorted(path.name for path in out.iterdir()) == ["a-orchestrator_1.0.0", "b-pam_0.9.0"]
    assert "Done. 2 installed, 0 removed, 0 unchanged." in result.output


def test_extensions_alias_reads_config_from_stdin(tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
    out = tmp_path / "extensions"
    out.mkdir()
    (out / "a-orchestrator_1.0.0").mkdir()

    result = _run_cli(["extensions", "-c", "-", "-o", str(out), "-y", "--prune"], input="b-pam: latest\n")

    assert result.exit_code == 0, result.output
    assert [path.name for path in out.iterdir()] == ["b-pam_0.9.0"]


def test_ext_update_upgrades_installed(tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
    out = tmp_path / "extensions"
    out.mkdir()
    (out / "a-orchestrator_1.0.0").mkdir()

    result = _run_cli(["ext", "-u", "-o", str(out), "-y"])

    assert result.exit_code == 0, result.output
    assert [path.name for path in out.iterdir()] == ["a-orchestrator_2.0.0"]


def test_ext_preflight_failure_exits_nonzero(tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
    out = tmp_path / "extensions"
    out.mkdir()

    result = _run_cli(["ext", "-e", "ghost@9.9.9", "-o", str(out), "-y"])

    assert result.exit_code == 1
    assert "extension installer preflight failed" in result.output
    assert "ghost:9.9.9 does not exist" in result.output
    assert list(out.iterdir()) == []


def test_ext_missing_directory(tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
    result = _run_cli(["ext", "-e", "a-orchestrator", "-o", str(tmp_path / "nope"), "-y"])

    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_list_command(fake_fetcher: FakeFetcher) -> None:
    result = _run_cli(["list"])

    assert result.exit_code == 0, result.output
    assert "a-orchestrator" in result.output
    assert "2.0.0" in result.output
    assert "b-pam" in result.output


def test_versions_command(fake_fetcher: FakeFetcher) -> None:
    result = _run_cli(["versions", "a-orchestrator"])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["2.0.0", "1.0.0"]

    missing = _run_cli(["versions", "ghost"])
    assert missing.exit_code == 0
    assert "No releases found for ghost" in missing.output


def test_ext_reads_config_url_with_token(
    tmp_path: Path, fake_fetcher: FakeFetcher, monkeypatch: pytest.MonkeyPatch
) -> None:
    out = tmp_path / "extensions"
    out.mkdir()
    seen: list[tuple[str, str | None]] = []
    transports: list[HttpxTransport] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((str(request.url), request.headers.get("Authorization")))
        return httpx.Response(200, content=b"b-pam: 0.9.0\n")

    class MockedTransport(HttpxTransport):
        def __init__(self, token: str | None = None, *, timeout: float = 30.0):
            super().__init__(token, timeout=timeout, client=httpx.Client(transport=httpx.MockTransport(handler)))
            self.closed = False
            transports.append(self)

        def close(self) -> None:
            self.closed = True
            self._client.close()

    monkeypatch.setattr(cli_module, "HttpxTransport", MockedTransport)

    result = _run_cli(
        ["ext", "-c", "https://config.example.com/extensions.yaml", "-t", "tok", "-o", str(out), "-y"]
    )

    assert result.exit_code == 0, result.output
    assert seen == [("https://config.example.com/extensions.yaml", "Bearer tok")]
    assert [transport.closed for transport in transports] == [True]
    assert [path.name for path in out.iterdir()] == ["b-pam_0.9.0"]


def test_log_file_keeps_console_level(tmp_path: Path) -> None:
    logger = cli_module.logger
    console_level = logger._console_handler.level if logger._console_handler else None
    log_file = tmp_path / "orchext.log"
    try:
        result = _run_cli(["--log-file", str(log_file), "version"])

        assert result.exit_code == 0, result.output
        assert logger._file_handler_path == log_file
        current = logger._console_handler.level if logger._console_handler else None
        assert current == console_level
    finally:
        if logger._file_handler is not None:
            logger.logger.removeHandler(logger._file_handler)
            logger._file_handler.close()
            logger._file_handler = None
            logger._file_handler_path = None
