"""Read-only access to extension releases published on GitHub."""

from __future__ import annotations

from typing import Dict, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from orchext.core.config import (
    DEFAULT_API_BASE,
    DEFAULT_DOWNLOAD_BASE,
    DEFAULT_GITHUB_ORG,
    InstallerSettings,
)
from orchext.core.errors import (
    AssetMissingError,
    DecodeError,
    NoReleasesError,
    RemoteError,
    TransportError,
)
from orchext.core.models import (
    GithubMessage,
    GithubRelease,
    GithubRepo,
    InstalledExtension,
    ReleaseRecord,
    is_extension_repo_name,
)
from orchext.core.transport import Transport
from orchext.utils.log import get_logger

logger = get_logger()

GITHUB_JSON_MEDIA_TYPE = "application/vnd.github+json"
CATALOG_PAGE_SIZE = 100
# Upper bound on organization pages requested while listing the catalog.
MAX_CATALOG_PAGES = 100

T = TypeVar("T")

_REPOS_ADAPTER: TypeAdapter[List[GithubRepo]] = TypeAdapter(List[GithubRepo])
_RELEASES_ADAPTER: TypeAdapter[List[GithubRelease]] = TypeAdapter(List[GithubRelease])


def decode_payload(body: bytes, adapter: "TypeAdapter[T]", *, url: str) -> T:
    """Decode a JSON body into the expected shape.

    Falls back to the platform error envelope, and raises RemoteError when it
    matches or DecodeError when it does not.
    """
    try:
        return adapter.validate_json(body)
    except ValidationError as shape_error:
        try:
            message = GithubMessage.model_validate_json(body)
        except ValidationError:
            logger.debug(
                "[fetcher] Failed to decode response",
                extra={"url": url, "error": str(shape_error)},
            )
            raise DecodeError(f"failed to decode response from {url}: {shape_error}") from shape_error
        raise RemoteError(url, message.message, message.documentation_url) from shape_error


class GithubReleaseFetcher:
    """Enumerates extensions of an organization and downloads their release archives."""

    def __init__(
        self,
        transport: Transport,
        org: Optional[str] = None,
        *,
        api_base: str = DEFAULT_API_BASE,
        download_base: str = DEFAULT_DOWNLOAD_BASE,
        max_pages: int = MAX_CATALOG_PAGES,
    ):
        self.org = org or DEFAULT_GITHUB_ORG
        self.api_base = api_base.rstrip("/")
        self.download_base = download_base.rstrip("/")
        self.max_pages = max_pages
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: InstallerSettings, transport: Transport) -> "GithubReleaseFetcher":
        return cls(
            transport,
            settings.github_org,
            api_base=settings.api_base,
            download_base=settings.download_base,
        )

    def _get_json(self, url: str, adapter: "TypeAdapter[T]") -> T:
        body = self._transport.get(url, accept=GITHUB_JSON_MEDIA_TYPE)
        return decode_payload(body, adapter, url=url)

    def repos_url(self, page: int) -> str:
        return (
            f"{self.api_base}/orgs/{self.org}/repos"
            f"?type=public&page={page}&per_page={CATALOG_PAGE_SIZE}"
        )

    def releases_url(self, name: str) -> str:
        return f"{self.api_base}/repos/{self.org}/{name}/releases"

    def download_url(self, name: str, version: str) -> str:
        asset = InstalledExtension(name, version).zip_name
        return f"{self.download_base}/{self.org}/{name}/releases/download/{version}/{asset}"

    def list_extension_names(self) -> List[str]:
        """Return every public repository name that follows the extension suffix convention."""
        names: List[str] = []
        for page in range(1, self.max_pages + 1):
            repos = self._get_json(self.repos_url(page), _REPOS_ADAPTER)
            if not repos:
                break
            names.extend(repo.name for repo in repos if is_extension_repo_name(repo.name))
        else:
            logger.warning(
                "[fetcher] Stopped listing repositories at the page limit",
                extra={"org": self.org, "max_pages": self.max_pages},
            )
        logger.debug("[fetcher] Listed extensions", extra={"org": self.org, "count": len(names)})
        return names

    def list_releases(self, name: str) -> List[ReleaseRecord]:
        releases = self._get_json(self.releases_url(name), _RELEASES_ADAPTER)
        return [
            ReleaseRecord(tag_name=item.tag_name, prerelease=item.prerelease, draft=item.draft)
            for item in releases
        ]

    def list_versions(self, name: str) -> List[str]:
        """Return published, non-prerelease tags in platform order (newest first).

        Drafts carry no downloadable asset and are skipped. The order is the
        one the API returns; it is not re-sorted.
        """
        try:
            releases = self.list_releases(name)
        except TransportError as exc:
            raise TransportError(
                f"failed to get list of releases for {name}: {exc}",
                url=exc.url,
                status_code=exc.status_code,
            ) from exc
        return [release.tag_name for release in releases if not (release.prerelease or release.draft)]

    def get_first(self, name: str) -> str:
        """Return the newest published version of an extension."""
        try:
            versions = self.list_versions(name)
        except TransportError as exc:
            if exc.status_code == 404:
                raise NoReleasesError(name) from exc
            raise
        if not versions:
            raise NoReleasesError(name)
        return versions[0]

    def exists(self, name: str, version: str) -> bool:
        """Return whether `version` is a published release of `name`.

        A repository unknown to the platform (404) does not exist.
        """
        try:
            return version in self.list_versions(name)
        except TransportError as exc:
            if exc.status_code == 404:
                return False
            raise

    def get_extension_list(self) -> Dict[str, str]:
        """Map each catalog extension to its newest version, skipping ones without releases."""
        extensions: Dict[str, str] = {}
        for name in self.list_extension_names():
            versions = self.list_versions(name)
            if versions:
                extensions[name] = versions[0]
        return extensions

    def download(self, name: str, version: str) -> bytes:
        url = self.download_url(name, version)
        logger.debug("[fetcher] Downloading release asset", extra={"url": url})
        try:
            return self._transport.get(url)
        except AssetMissingError:
            raise
        except TransportError as exc:
            if exc.status_code == 404:
                raise AssetMissingError(name, version, url=url) from exc
            raise TransportError(
                f"failed to download extension {name}:{version}: {exc}",
                url=url,
                status_code=exc.status_code,
            ) from exc


__all__ = [
    "CATALOG_PAGE_SIZE",
    "GITHUB_JSON_MEDIA_TYPE",
    "GithubReleaseFetcher",
    "MAX_CATALOG_PAGES",
    "decode_payload",
]
