"""Call executor: validate -> run handler -> envelope. Nothing but cancellation escapes as an exception."""
from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping

from formrpc.rpc.envelope import Envelope
from formrpc.rpc.errors import RpcError
from formrpc.rpc.procedure import CallContext, Procedure, ProcedureKind
from formrpc.rpc.router import Router

logger = logging.getLogger(__name__)


class CallExecutor:
    """
    Runs calls against a router. deps is handed to handlers as ctx.deps
    (e.g. the in-memory store); it lives as long as the executor.
    Single-shot: no retries at this layer.
    """

    def __init__(self, router: Router, deps: Any = None, *, expose_internal_errors: bool = False) -> None:
        self.router = router
        self.deps = deps
        self.expose_internal_errors = expose_internal_errors

    async def call(
        self,
        path: str,
        kind: ProcedureKind | str,
        raw_input: Any,
        headers: Mapping[str, str] | None = None,
    ) -> Envelope:
        """Resolve path for kind and run it."""
        try:
            procedure = self.router.resolve(path, kind)
        except RpcError as e:
            logger.info("rpc %s %s: %s", getattr(kind, "value", kind), path, e)
            return Envelope.failure(e)
        return await self.run(procedure, raw_input, headers)

    async def run(
        self,
        procedure: Procedure,
        raw_input: Any,
        headers: Mapping[str, str] | None = None,
    ) -> Envelope:
        ctx = CallContext(path=procedure.path, kind=procedure.kind, headers=headers or {}, deps=self.deps)
        try:
            value = procedure.validator.parse(raw_input)
            if inspect.isawaitable(value):
                value = await value
            result = procedure.invoke(value, ctx)
            if inspect.isawaitable(result):
                result = await result
            return Envelope.success(result)
        except RpcError as e:
            logger.info("rpc %s %s failed: %s", procedure.kind.value, procedure.path, e)
            return Envelope.failure(e)
        except Exception as e:
            logger.exception("rpc %s %s raised", procedure.kind.value, procedure.path)
            message = str(e) if self.expose_internal_errors else None
            return Envelope.failure(RpcError("INTERNAL_SERVER_ERROR", message))
