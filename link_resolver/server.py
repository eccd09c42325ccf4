"""
HTTP front door for the resolver.

Routes:
    POST /bypass  {"url": ..., "preferExternal": false, "json_result": "a.b"}
    GET  /health
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import msgspec
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from link_resolver.config.env import load_resolver_config
from link_resolver.core.models import ResolveOptions
from link_resolver.pipelines.orchestrator import Resolver
from link_resolver.utils.logging import get_logger

logger = get_logger(__name__)


class BypassRequest(BaseModel):
    url: str | int | None = None
    prefer_external: bool = Field(False, alias="preferExternal")
    json_result: str | None = None

    model_config = {"populate_by_name": True}


def create_app(resolver: Resolver | None = None) -> FastAPI:
    """
    Build the FastAPI application around one resolver.

    Args:
        resolver: Resolver to serve; built from the environment if None.
            It is closed (with its browser engine) when the app shuts down.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.resolver = resolver or Resolver(load_resolver_config())
        config = app.state.resolver.config
        logger.info(
            "Resolver ready (remote_resolvers=%s; render_concurrency=%s)",
            config.enable_remote_resolvers,
            config.playwright_max_concurrency,
        )
        try:
            yield
        finally:
            await app.state.resolver.aclose()

    app = FastAPI(title="Link Resolver", version="1.0", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/bypass")
    async def bypass(body: BypassRequest) -> JSONResponse:
        link = str(body.url or "").strip()
        if not link:
            return JSONResponse({"error": "url required"}, status_code=status.HTTP_400_BAD_REQUEST)

        options = ResolveOptions(
            prefer_external=body.prefer_external,
            result_field_hint=body.json_result,
        )
        try:
            result = await app.state.resolver.resolve(link, options)
        except Exception as exc:
            logger.exception("/bypass error")
            return JSONResponse(
                {"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return JSONResponse(msgspec.to_builtins(result))

    return app


def main() -> None:
    """Serve the front door with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
