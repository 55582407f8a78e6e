"""Exceptions raised by the extension installer."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ExtensionError(RuntimeError):
    """Base class for every installer failure."""


class ParseError(ExtensionError):
    """Raised for a malformed request string or configuration document."""


class MissingVersionError(ExtensionError):
    """Raised when an extension is requested with an empty version."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no version provided for extension {name}")


class UnknownExtensionError(ExtensionError):
    """Raised when a requested extension version is not published."""

    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        super().__init__(f"extension {name}:{version} does not exist")


class NoReleasesError(ExtensionError):
    """Raised when `latest` is requested for an extension without releases."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no releases found for extension {name}. Does it exist?")


class MissingDirectoryError(ExtensionError):
    """Raised when the extension directory does not exist."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"extension directory {self.path} does not exist")


class TransportError(ExtensionError):
    """Raised for network failures and non-success HTTP statuses."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class AssetMissingError(TransportError):
    """Raised when a release does not carry the conventional zip asset."""

    def __init__(self, name: str, version: str, *, url: Optional[str] = None):
        self.name = name
        self.version = version
        self.asset_name = f"{name}_{version}.zip"
        super().__init__(
            f"failed to download extension {name}:{version} "
            f'(release must contain "{self.asset_name}")',
            url=url,
            status_code=404,
        )


class DecodeError(ExtensionError):
    """Raised when a response body is neither the expected shape nor an error envelope."""


class RemoteError(ExtensionError):
    """Raised when the platform answers with an error envelope."""

    def __init__(self, url: str, message: str, documentation_url: str):
        self.url = url
        self.message = message
        self.documentation_url = documentation_url
        super().__init__(f"failed to get {url}: {message} ({documentation_url})")


class PathTraversalError(ExtensionError):
    """Raised when an archive entry would be written outside its destination."""

    def __init__(self, entry_name: str, destination: Union[str, Path]):
        self.entry_name = entry_name
        self.destination = Path(destination)
        super().__init__(f"{entry_name}: illegal file path outside {self.destination}")


class FilesystemError(ExtensionError):
    """Raised when reading, writing, creating or removing a path fails."""

    def __init__(self, message: str, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


__all__ = [
    "AssetMissingError",
    "DecodeError",
    "ExtensionError",
    "FilesystemError",
    "MissingDirectoryError",
    "MissingVersionError",
    "NoReleasesError",
    "ParseError",
    "PathTraversalError",
    "RemoteError",
    "TransportError",
    "UnknownExtensionError",
]
