"""DevTools HTTP endpoints: version, target list and new tab."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ot_inspect.errors import ConnectionFailed


@dataclass(frozen=True)
class Target:
    """A browser target as listed by /json/list."""

    id: str
    url: str
    type: str = "page"
    title: str = ""
    ws_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Target:
        return cls(
            id=data["id"],
            url=data.get("url", ""),
            type=data.get("type", "page"),
            title=data.get("title", ""),
            ws_url=data.get("webSocketDebuggerUrl", ""),
        )


class DevToolsClient:
    """Thin httpx client for the browser's DevTools HTTP interface."""

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def _request(self, method: str, path: str) -> Any:
        try:
            with httpx.Client(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = client.request(method, path)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise ConnectionFailed(
                f"DevTools {method} {path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ConnectionFailed(f"DevTools {method} {path} failed: {e}") from e
        except ValueError as e:
            raise ConnectionFailed(f"DevTools {method} {path} returned invalid JSON") from e

    def version(self) -> dict[str, Any]:
        return self._request("GET", "/json/version")

    def list_targets(self) -> list[Target]:
        data = self._request("GET", "/json/list")
        return [Target.from_dict(item) for item in data if isinstance(item, dict) and "id" in item]

    def new_target(self, url: str = "about:blank") -> Target:
        """Open a new tab. Recent browsers only accept PUT here."""
        return Target.from_dict(self._request("PUT", f"/json/new?{url}"))

    def is_alive(self) -> bool:
        try:
            self.version()
        except ConnectionFailed:
            return False
        return True
