"""HTTP transport used by the release fetcher and the byte-source adapter."""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from orchext.core.errors import TransportError
from orchext.utils.log import get_logger
from orchext.utils.user_agent import build_user_agent

logger = get_logger()

DEFAULT_TIMEOUT_SECONDS = 30.0


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return f" ({message})"
    return ""


class Transport(Protocol):
    """Fetches a URL and returns the response body."""

    def get(self, url: str, *, accept: Optional[str] = None) -> bytes: ...


class HttpxTransport:
    """Transport backed by a reused ``httpx.Client``.

    The bearer token is fixed at construction and attached to every request.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self._token = token or None
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def _headers(self, accept: Optional[str]) -> dict[str, str]:
        headers = {"User-Agent": build_user_agent()}
        if accept:
            headers["Accept"] = accept
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, url: str, *, accept: Optional[str] = None) -> bytes:
        logger.debug("[transport] GET", extra={"url": url, "authenticated": self.has_token})
        try:
            response = self._client.get(url, headers=self._headers(accept))
        except httpx.HTTPError as exc:
            raise TransportError(f"failed to get {url}: {exc}", url=url) from exc
        if response.status_code != httpx.codes.OK:
            raise TransportError(
                f"failed to get {url}: unexpected status code: {response.status_code}"
                + _error_detail(response),
                url=url,
                status_code=response.status_code,
            )
        return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "HttpxTransport", "Transport"]
