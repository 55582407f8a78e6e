"""Data types shared by the fetcher, reconciler and installer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from orchext.core.errors import ParseError

EXTENSION_NAME_VERSION_DELIMITER = "@"
EXTENSION_DIR_DELIMITER = "_"
LATEST_KEYWORD = "latest"
EXTENSION_NAME_SUFFIXES = ("-orchestrator", "-pam")


@dataclass(frozen=True)
class VersionRequest:
    """Requested version of an extension: either `latest` or an exact tag.

    `exact` is None for the latest placeholder. An empty string is a request
    that carried no version at all and fails validation later on.
    """

    exact: Optional[str] = None

    @property
    def is_latest(self) -> bool:
        return self.exact is None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "VersionRequest":
        if raw is None:
            return cls("")
        value = str(raw).strip()
        if value == LATEST_KEYWORD:
            return LATEST
        return cls(value)

    def __str__(self) -> str:
        return LATEST_KEYWORD if self.exact is None else self.exact


LATEST = VersionRequest()


@dataclass(frozen=True)
class Extension:
    """A requested extension: name plus version request."""

    name: str
    version: VersionRequest

    def __str__(self) -> str:
        return f"{self.name}{EXTENSION_NAME_VERSION_DELIMITER}{self.version}"


@dataclass(frozen=True)
class InstalledExtension:
    """A fully qualified extension as laid out on disk."""

    name: str
    version: str

    @property
    def dir_name(self) -> str:
        return extension_dir_name(self.name, self.version)

    @property
    def zip_name(self) -> str:
        return f"{self.dir_name}.zip"


def extension_dir_name(name: str, version: str) -> str:
    return f"{name}{EXTENSION_DIR_DELIMITER}{version}"


def parse_extension_string(extension_string: str) -> Extension:
    """Parse `NAME` or `NAME@VERSION` into an Extension.

    A missing version means the latest release.
    """
    parts = extension_string.split(EXTENSION_NAME_VERSION_DELIMITER)
    if not parts[0].strip():
        raise ParseError(f"invalid extension string: {extension_string!r} has no name")
    if len(parts) == 1:
        return Extension(name=parts[0].strip(), version=LATEST)
    if len(parts) == 2:
        return Extension(name=parts[0].strip(), version=VersionRequest.parse(parts[1]))
    raise ParseError(f"invalid extension string: {extension_string}")


def is_extension_repo_name(name: str) -> bool:
    return name.endswith(EXTENSION_NAME_SUFFIXES)


# Platform JSON projections. Unknown fields are ignored.


class GithubRepo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class GithubRelease(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_name: str
    prerelease: bool = False
    draft: bool = False


class GithubMessage(BaseModel):
    """Error envelope returned by the platform API."""

    model_config = ConfigDict(extra="ignore")

    message: str
    documentation_url: str = ""


@dataclass(frozen=True)
class ReleaseRecord:
    tag_name: str
    prerelease: bool
    draft: bool = False


RequestSet = Dict[str, VersionRequest]


__all__ = [
    "EXTENSION_NAME_SUFFIXES",
    "Extension",
    "GithubMessage",
    "GithubRelease",
    "GithubRepo",
    "InstalledExtension",
    "LATEST",
    "LATEST_KEYWORD",
    "ReleaseRecord",
    "RequestSet",
    "VersionRequest",
    "extension_dir_name",
    "is_extension_repo_name",
    "parse_extension_string",
]
