"""Unit tests for app.services.upstream_proxy: credential header, verbatim relay, failure mapping."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from app.core.config import Settings
from app.core.errors import UpstreamNotConfigured, UpstreamUnavailable
from app.services.upstream_proxy import UpstreamProxy, build_upstream_proxies


def _mock_client(mock_client_class: MagicMock, request: AsyncMock) -> MagicMock:
    instance = MagicMock()
    instance.request = request
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return instance


def _response(status_code: int = 200, content: bytes = b"{}", content_type: str = "application/json") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    resp.headers = {"content-type": content_type}
    return resp


class TestNotConfigured(unittest.TestCase):
    def test_missing_base_url(self) -> None:
        proxy = UpstreamProxy("Radarr", None, "X-Api-Key", "key")
        self.assertFalse(proxy.is_configured)
        with self.assertRaises(UpstreamNotConfigured) as ctx:
            asyncio.run(proxy.relay("GET", "queue"))
        self.assertEqual(ctx.exception.message, "Radarr is not configured")

    def test_missing_credential(self) -> None:
        proxy = UpstreamProxy("Radarr", "http://radarr", "X-Api-Key", None)
        with self.assertRaises(UpstreamNotConfigured):
            asyncio.run(proxy.relay("GET", "queue"))


class TestRelay(unittest.TestCase):
    @patch("app.services.upstream_proxy.httpx.AsyncClient")
    def test_forwards_request_with_credential_header(self, mock_client_class: MagicMock) -> None:
        request = AsyncMock(return_value=_response(404, b'{"message":"nope"}'))
        _mock_client(mock_client_class, request)
        proxy = UpstreamProxy("Radarr", "http://radarr:7878/api/v3/", "X-Api-Key", "secret-key", timeout=7.0)

        result = asyncio.run(
            proxy.relay(
                "POST",
                "/movie",
                query="page=2",
                body=b'{"tmdbId":1}',
                headers={"content-type": "application/json", "authorization": "Bearer ours"},
            )
        )

        self.assertEqual(result.status_code, 404)
        self.assertEqual(result.content, b'{"message":"nope"}')
        self.assertEqual(result.content_type, "application/json")
        mock_client_class.assert_called_once_with(timeout=7.0)
        args, kwargs = request.call_args
        self.assertEqual(args, ("POST", "http://radarr:7878/api/v3/movie?page=2"))
        self.assertEqual(kwargs["content"], b'{"tmdbId":1}')
        self.assertEqual(kwargs["headers"]["X-Api-Key"], "secret-key")
        self.assertEqual(kwargs["headers"]["content-type"], "application/json")
        self.assertNotIn("authorization", kwargs["headers"])

    @patch("app.services.upstream_proxy.httpx.AsyncClient")
    def test_timeout_maps_to_unavailable(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectTimeout("timed out")))
        proxy = UpstreamProxy("Sonarr", "http://sonarr", "X-Api-Key", "k")
        with self.assertRaises(UpstreamUnavailable) as ctx:
            asyncio.run(proxy.relay("GET", "queue"))
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertIn("timed out", ctx.exception.message)

    @patch("app.services.upstream_proxy.httpx.AsyncClient")
    def test_connection_error_maps_to_unavailable(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused")))
        proxy = UpstreamProxy("Jellyfin", "http://jellyfin", "X-Emby-Token", "k")
        with self.assertRaises(UpstreamUnavailable) as ctx:
            asyncio.run(proxy.relay("GET", "Items"))
        self.assertIn("unreachable", ctx.exception.message)


class TestBuildUpstreamProxies(unittest.TestCase):
    def test_headers_per_upstream(self) -> None:
        settings = Settings(
            _env_file=None,
            DATABASE_URL="sqlite://",
            JWT_SECRET="s",
            JELLYFIN_URL="http://jellyfin:8096",
            JELLYFIN_API_KEY="jf",
            TMDB_TOKEN="tmdb-token",
            SONARR_URL=None,
        )
        proxies = build_upstream_proxies(settings)
        self.assertEqual(set(proxies), {"jellyfin", "tmdb", "radarr", "sonarr"})
        self.assertEqual(proxies["jellyfin"].header_name, "X-Emby-Token")
        self.assertEqual(proxies["tmdb"].header_name, "Authorization")
        self.assertEqual(proxies["tmdb"].header_value, "Bearer tmdb-token")
        self.assertEqual(proxies["tmdb"].base_url, "https://api.themoviedb.org/3")
        self.assertTrue(proxies["jellyfin"].is_configured)
        self.assertFalse(proxies["sonarr"].is_configured)


if __name__ == "__main__":
    unittest.main()
