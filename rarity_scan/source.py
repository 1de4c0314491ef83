"""Token metadata sources: HTTP JSON endpoint and an in-memory stand-in."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Protocol

import httpx

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "RarityScan/0.1"


class FetchError(Exception):
    """A token's metadata could not be fetched. Never fatal for a run."""

    def __init__(self, index: int, message: str):
        super().__init__(f"token {index}: {message}")
        self.index = index


class TransportFailure(FetchError):
    """Connection, timeout, or other network error."""


class ResponseFailure(FetchError):
    def __init__(self, index: int, status_code: int, message: str = ""):
        super().__init__(index, message or f"HTTP {status_code}")
        self.status_code = status_code


class DecodeFailure(FetchError):
    """Body is not a JSON object."""


class MetadataSource(Protocol):
    def fetch(self, index: int) -> dict[str, str]:
        """Return the category -> value mapping for token *index* or raise FetchError."""
        ...


def coerce_attrs(index: int, data: Any) -> dict[str, str]:
    if not isinstance(data, dict):
        raise DecodeFailure(index, f"expected a JSON object, got {type(data).__name__}")
    attrs: dict[str, str] = {}
    for cate, value in data.items():
        if value is None:
            continue
        attrs[str(cate)] = value if isinstance(value, str) else json.dumps(value, sort_keys=True)
    return attrs


class HttpMetadataSource:
    """GETs ``{base_url}/{index}.json`` through one shared httpx client.

    The client is safe to share between worker threads. *timeout* bounds
    every individual request.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client if client is not None else httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
        )

    def url_for(self, index: int) -> str:
        return f"{self.base_url}/{index}.json"

    def fetch(self, index: int) -> dict[str, str]:
        url = self.url_for(index)
        log.debug("GET %s", url)
        try:
            resp = self.client.get(url, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise TransportFailure(index, f"{type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            raise ResponseFailure(index, resp.status_code, f"HTTP {resp.status_code} — {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodeFailure(index, f"invalid JSON body: {exc}") from exc
        log.debug("token %d response body: %s", index, resp.text)
        return coerce_attrs(index, data)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> HttpMetadataSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StaticMetadataSource:
    """Serves token metadata from memory; unknown indices behave like a 404."""

    def __init__(self, tokens: Mapping[int, Mapping[str, Any]]):
        self.tokens = dict(tokens)

    def fetch(self, index: int) -> dict[str, str]:
        if index not in self.tokens:
            raise ResponseFailure(index, 404)
        return coerce_attrs(index, dict(self.tokens[index]))
