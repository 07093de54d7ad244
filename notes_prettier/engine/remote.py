from __future__ import annotations

import ipaddress
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

import httpx

from notes_prettier.engine.base import EngineFailure

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    host = (host or "").strip().lower()
    if not host:
        return False
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class HttpFormattingEngine:
    """Client for a formatter service: POST <base_url>/format {text, parser, options} -> {text}."""

    def __init__(
        self,
        base_url: str,
        *,
        parser: str = "markdown",
        api_key: str = "",
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("formatter base_url is empty")
        self.base_url = base_url.rstrip("/")
        self.parser = parser
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _new_client(self) -> httpx.AsyncClient:
        # Local formatter sidecars must not be routed through env proxies.
        host = urlparse(self.base_url).hostname or ""
        return httpx.AsyncClient(trust_env=not _is_loopback_host(host))

    async def format(self, text: str, options: Mapping[str, Any]) -> str:
        url = f"{self.base_url}/format"
        payload = {"text": text, "parser": self.parser, "options": dict(options)}

        client = self._client or self._new_client()
        try:
            resp = await client.post(url, json=payload, headers=self._headers(), timeout=self.timeout_seconds)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise EngineFailure(f"HTTP {code} from formatter: {e.response.text}", status_code=code) from e
        except httpx.RequestError as e:
            raise EngineFailure(f"formatter request failed: {e}") from e
        except ValueError as e:
            raise EngineFailure(f"formatter returned invalid JSON: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        formatted = data.get("text") if isinstance(data, dict) else None
        if not isinstance(formatted, str):
            logger.warning("formatter response without text: %r", data)
            raise EngineFailure("formatter response is missing 'text'")
        return formatted
