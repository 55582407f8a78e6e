from __future__ import annotations

import pytest

from orchext.core.errors import ParseError
from orchext.core.models import (
    LATEST,
    InstalledExtension,
    VersionRequest,
    is_extension_repo_name,
    parse_extension_string,
)


def test_parse_extension_string_with_version() -> None:
    extension = parse_extension_string("x@1.2.3")
    assert extension.name == "x"
    assert extension.version == VersionRequest("1.2.3")
    assert not extension.version.is_latest


def test_parse_extension_string_without_version_means_latest() -> None:
    extension = parse_extension_string("x")
    assert extension.name == "x"
    assert extension.version is LATEST
    assert str(extension) == "x@latest"


def test_parse_extension_string_latest_keyword() -> None:
    assert parse_extension_string("foo@latest").version.is_latest


@pytest.mark.parametrize("raw", ["x@1@2", "@1.0.0", "", "  "])
def test_parse_extension_string_rejects_malformed(raw: str) -> None:
    with pytest.raises(ParseError):
        parse_extension_string(raw)


def test_empty_version_is_not_latest() -> None:
    extension = parse_extension_string("x@")
    assert extension.version.exact == ""
    assert not extension.version.is_latest


def test_version_request_parse() -> None:
    assert VersionRequest.parse("latest") is LATEST
    assert VersionRequest.parse(None) == VersionRequest("")
    assert VersionRequest.parse(" 1.10 ") == VersionRequest("1.10")
    assert str(VersionRequest("2.0.0")) == "2.0.0"


def test_installed_extension_layout_names() -> None:
    extension = InstalledExtension("iis-orchestrator", "2.2.2")
    assert extension.dir_name == "iis-orchestrator_2.2.2"
    assert extension.zip_name == "iis-orchestrator_2.2.2.zip"


def test_is_extension_repo_name() -> None:
    assert is_extension_repo_name("iis-orchestrator")
    assert is_extension_repo_name("vault-pam")
    assert not is_extension_repo_name("orchestrator-docs")
    assert not is_extension_repo_name("website")
