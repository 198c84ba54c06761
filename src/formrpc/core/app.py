"""Application: composed from modules via app.register(module). Served by Starlette."""
from __future__ import annotations

import logging
from typing import Any, Callable

from starlette.applications import Starlette
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from formrpc.core.config import RpcConfig
from formrpc.core.module import Module

logger = logging.getLogger(__name__)


class Application:
    """
    Application. Composed from modules via register(module).
    An ASGI callable itself: hand it to uvicorn or httpx.ASGITransport.
    """

    def __init__(self, config: RpcConfig | None = None) -> None:
        self.config = config or RpcConfig()
        self._modules: list[Module] = []
        self._routes: list[Route] = []
        self._asgi: Starlette | None = None

    def register(self, module: Module) -> Application:
        """Register a module (RpcModule, ...). Returns self for chaining."""
        module.register_into(self)
        self._modules.append(module)
        return self

    def add_route(self, path: str, endpoint: Callable[..., Any], methods: list[str] | None = None) -> None:
        """Add an HTTP route. endpoint: async (starlette Request) -> Response."""
        if methods is None:
            methods = ["GET"]
        self._routes.append(Route(path, endpoint, methods=methods))
        self._asgi = None
        logger.debug("route %s %s", ",".join(methods), path)

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    @property
    def asgi(self) -> Starlette:
        if self._asgi is None:
            self._asgi = Starlette(routes=list(self._routes))
        return self._asgi

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.asgi(scope, receive, send)

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Run HTTP server (blocks)."""
        import uvicorn

        uvicorn.run(self, host=host, port=port, log_level=self.config.log_level.lower())
