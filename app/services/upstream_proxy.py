"""Pass-through relay to an upstream media service (Jellyfin, TMDB, Radarr, Sonarr)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from app.core.errors import UpstreamNotConfigured, UpstreamUnavailable

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Inbound headers that are forwarded upstream; everything else (notably our own
# Authorization header) stays behind.
FORWARDED_REQUEST_HEADERS = ("content-type", "accept")


@dataclass(frozen=True)
class RelayResponse:
    status_code: int
    content: bytes
    content_type: str | None


class UpstreamProxy:
    """Forwards a request to base_url + path with the upstream credential header added."""

    def __init__(
        self,
        name: str,
        base_url: str | None,
        header_name: str,
        header_value: str | None,
        timeout: float = 10.0,
    ) -> None:
        self.name = name
        self.base_url = (base_url or "").rstrip("/")
        self.header_name = header_name
        self.header_value = header_value
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url) and bool(self.header_value)

    async def relay(
        self,
        method: str,
        path: str,
        query: str = "",
        body: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> RelayResponse:
        """
        Send the request upstream and return its status, body and content type verbatim.

        Raises UpstreamNotConfigured when base URL or credential is missing and
        UpstreamUnavailable on connection failure or timeout.
        """
        if not self.is_configured:
            raise UpstreamNotConfigured(f"{self.name} is not configured")

        url = f"{self.base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        out_headers = {
            k: v for k, v in (headers or {}).items() if k.lower() in FORWARDED_REQUEST_HEADERS
        }
        out_headers[self.header_name] = self.header_value or ""

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(
                    method, url, content=body or None, headers=out_headers
                )
        except httpx.TimeoutException as e:
            logger.error(
                "Upstream request timed out",
                extra={"upstream": self.name, "method": method, "path": path},
            )
            raise UpstreamUnavailable(f"{self.name} timed out") from e
        except httpx.RequestError as e:
            logger.error(
                "Upstream request failed",
                extra={"upstream": self.name, "method": method, "path": path, "reason": str(e)[:200]},
            )
            raise UpstreamUnavailable(f"{self.name} is unreachable") from e

        if resp.status_code >= 400:
            logger.info(
                "Upstream returned error status",
                extra={"upstream": self.name, "status_code": resp.status_code, "path": path},
            )
        return RelayResponse(
            status_code=resp.status_code,
            content=resp.content,
            content_type=resp.headers.get("content-type"),
        )


def _secret(value) -> str | None:
    return value.get_secret_value() if value is not None else None


def build_upstream_proxies(settings: Settings) -> dict[str, UpstreamProxy]:
    """Create one relay per upstream service, keyed by the URL segment it is mounted under."""
    tmdb_token = _secret(settings.TMDB_TOKEN)
    timeout = settings.UPSTREAM_TIMEOUT_SEC
    return {
        "jellyfin": UpstreamProxy(
            "Jellyfin", settings.JELLYFIN_URL, "X-Emby-Token", _secret(settings.JELLYFIN_API_KEY), timeout
        ),
        "tmdb": UpstreamProxy(
            "TMDB",
            settings.TMDB_URL,
            "Authorization",
            f"Bearer {tmdb_token}" if tmdb_token else None,
            timeout,
        ),
        "radarr": UpstreamProxy(
            "Radarr", settings.RADARR_URL, "X-Api-Key", _secret(settings.RADARR_API_KEY), timeout
        ),
        "sonarr": UpstreamProxy(
            "Sonarr", settings.SONARR_URL, "X-Api-Key", _secret(settings.SONARR_API_KEY), timeout
        ),
    }
