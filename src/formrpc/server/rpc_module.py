"""
RpcModule: building block that serves a Router over HTTP.
Configure via .server(...); register with app.register(rpc).

    rpc = RpcModule(router, deps=store).server("/rpc")
    app = Application().register(rpc)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from formrpc.core.app import Application
from formrpc.core.module import Module
from formrpc.rpc.envelope import Envelope, batch_http_status
from formrpc.rpc.errors import RpcError
from formrpc.rpc.executor import CallExecutor
from formrpc.rpc.router import Router
from formrpc.server.content_types import (
    ContentTypeHandler,
    ContentTypeHandlerChain,
    default_content_type_handlers,
)

logger = logging.getLogger(__name__)


class RpcModule(Module):
    """
    RPC server as object: router + content-type handlers + base path.
    deps is passed to handlers as ctx.deps for the module's lifetime.
    """

    def __init__(self, router: Router, deps: Any = None) -> None:
        self._router = router
        self._deps = deps
        self._path: str | None = None
        self._content_types: Sequence[ContentTypeHandler] | None = None

    def server(
        self,
        path: str | None = None,
        content_types: Sequence[ContentTypeHandler] | None = None,
    ) -> RpcModule:
        """Route prefix for incoming calls and the ordered content-type handlers."""
        self._path = path.rstrip("/") if path is not None else None
        self._content_types = content_types
        return self

    def register_into(self, app: Application) -> None:
        config = app.config
        path = self._path if self._path is not None else config.base_path.rstrip("/")
        handlers = self._content_types
        if handlers is None:
            handlers = default_content_type_handlers(
                max_files=config.max_files,
                max_fields=config.max_fields,
                max_batch_size=config.max_batch_size,
            )
        executor = CallExecutor(self._router, self._deps, expose_internal_errors=config.expose_internal_errors)
        endpoint = RpcEndpoint(ContentTypeHandlerChain(handlers), executor)
        app.add_route(path + "/{path:path}", endpoint.handle, methods=["GET", "POST"])


def _json_response(envelopes: list[Envelope], batch: bool) -> Response:
    if batch:
        return JSONResponse([e.to_wire() for e in envelopes], status_code=batch_http_status(envelopes))
    envelope = envelopes[0]
    return JSONResponse(envelope.to_wire(), status_code=envelope.http_status)


class RpcEndpoint:
    """HTTP endpoint: negotiate content type, decode, execute each call, encode envelopes."""

    def __init__(self, content_types: ContentTypeHandlerChain, executor: CallExecutor) -> None:
        self.content_types = content_types
        self.executor = executor

    async def handle(self, request: Request) -> Response:
        try:
            try:
                decoded = await self.content_types.decode(request)
            except RpcError as e:
                logger.info("rpc request %s %s rejected: %s", request.method, request.url.path, e)
                return _json_response([Envelope.failure(e)], batch=False)
            headers = request.headers
            envelopes = await asyncio.gather(
                *(self.executor.call(c.path, c.kind, c.input, headers) for c in decoded.calls)
            )
            return _json_response(list(envelopes), decoded.batch)
        finally:
            await request.close()
