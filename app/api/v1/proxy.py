"""Authenticated pass-through relays to Jellyfin, TMDB, Radarr and Sonarr."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from app.api.v1.deps import Principal, get_context, require_auth
from app.core.context import AppContext

UPSTREAM_KEYS = ("jellyfin", "tmdb", "radarr", "sonarr")
RELAY_METHODS = ["GET", "POST", "PUT", "DELETE"]

router = APIRouter()


def _relay_endpoint(key: str) -> Callable[..., Awaitable[Response]]:
    async def relay(
        path: str,
        request: Request,
        _user: Annotated[Principal, Depends(require_auth)],
        ctx: Annotated[AppContext, Depends(get_context)],
    ) -> Response:
        """Forward method, path, query and body upstream; return status and body verbatim."""
        result = await ctx.upstreams[key].relay(
            request.method,
            path,
            query=request.url.query,
            body=await request.body(),
            headers=dict(request.headers),
        )
        return Response(
            content=result.content,
            status_code=result.status_code,
            media_type=result.content_type,
        )

    relay.__name__ = f"relay_{key}"
    return relay


for _key in UPSTREAM_KEYS:
    router.add_api_route(
        f"/{_key}/{{path:path}}",
        _relay_endpoint(_key),
        methods=RELAY_METHODS,
        tags=[_key],
        name=f"relay_{_key}",
    )
