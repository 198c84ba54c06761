"""
Terminal HTTP links. Each owns one wire encoding:

- HttpLink: one JSON call per exchange.
- HttpBatchLink: JSON calls issued in the same event-loop turn share one exchange.
- FormDataLink: one multipart exchange per call, never batched.

The send primitive is an httpx.AsyncClient: pass your own (pooling, TLS,
httpx.ASGITransport in tests) or let the link open one per exchange.
"""
from __future__ import annotations

import asyncio
import functools
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx
from pydantic_core import PydanticSerializationError, to_jsonable_python

from formrpc.client.form_data import File, FormData
from formrpc.client.links import Forward, Operation
from formrpc.core.config import RpcConfig
from formrpc.rpc.envelope import Envelope
from formrpc.rpc.errors import ProtocolError, RpcError, TransportError
from formrpc.rpc.procedure import ProcedureKind

logger = logging.getLogger(__name__)


class _HttpLink:
    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.client = client
        self.headers = dict(headers or {})

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            if self.client is not None:
                return await self.client.request(method, url, headers=headers, **kwargs)
            async with httpx.AsyncClient() as client:
                return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e!r}") from e

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"HTTP {response.status_code}: response body is not JSON") from e


def _encode_input(op: Operation) -> Any:
    try:
        return to_jsonable_python(op.input)
    except PydanticSerializationError as e:
        raise RpcError("BAD_REQUEST", f"input of {op.path!r} is not JSON serializable: {e}") from e


def _json_request(kind: ProcedureKind, payload: Any, *, batch: bool = False) -> tuple[str, dict[str, Any]]:
    """Queries travel as GET with the payload in ?input=, mutations as POST bodies."""
    params = {"batch": "1"} if batch else {}
    if kind is ProcedureKind.QUERY:
        params["input"] = json.dumps(payload, separators=(",", ":"))
        return "GET", {"params": params}
    if kind is ProcedureKind.MUTATION:
        return "POST", {"params": params, "json": payload}
    raise RpcError("METHOD_NOT_SUPPORTED", "subscriptions are not supported over HTTP")


class HttpLink(_HttpLink):
    """Single JSON call per HTTP exchange."""

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        method, kwargs = _json_request(op.kind, {"input": _encode_input(op)})
        response = await self._send(method, f"{self.url}/{op.path}", **kwargs)
        return Envelope.from_wire(self._body(response))


@dataclass
class _Pending:
    op: Operation
    payload: Any
    future: asyncio.Future


class HttpBatchLink(_HttpLink):
    """
    Coalesce JSON calls per kind. The queue is flushed on the next loop iteration
    (or after wait seconds), split into exchanges of at most max_batch_size calls.
    Results are matched to calls by position; one failed call never fails its siblings.
    Cancelling every caller of an in-flight batch cancels its exchange.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: Mapping[str, str] | None = None,
        max_batch_size: int = 50,
        wait: float = 0.0,
    ) -> None:
        super().__init__(url, client=client, headers=headers)
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        self.max_batch_size = max_batch_size
        self.wait = wait
        self._queues: dict[ProcedureKind, list[_Pending]] = {}
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, url: str, config: RpcConfig, **kwargs: Any) -> HttpBatchLink:
        """Batch size and wait window from RpcConfig (FORMRPC_MAX_BATCH_SIZE, FORMRPC_BATCH_WAIT)."""
        return cls(url, max_batch_size=config.max_batch_size, wait=config.batch_wait, **kwargs)

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        if op.kind is ProcedureKind.SUBSCRIPTION:
            raise RpcError("METHOD_NOT_SUPPORTED", "subscriptions are not supported over HTTP")
        loop = asyncio.get_running_loop()
        pending = _Pending(op, {"input": _encode_input(op)}, loop.create_future())
        queue = self._queues.setdefault(op.kind, [])
        queue.append(pending)
        if len(queue) == 1:
            if self.wait > 0:
                loop.call_later(self.wait, self._flush, op.kind)
            else:
                loop.call_soon(self._flush, op.kind)
        return await pending.future

    def _flush(self, kind: ProcedureKind) -> None:
        live = [p for p in self._queues.pop(kind, []) if not p.future.done()]
        for start in range(0, len(live), self.max_batch_size):
            group = live[start:start + self.max_batch_size]
            task = asyncio.ensure_future(self._send_batch(kind, group))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            for p in group:
                p.future.add_done_callback(functools.partial(_cancel_when_abandoned, task, group))

    async def _send_batch(self, kind: ProcedureKind, group: list[_Pending]) -> None:
        logger.debug("batch %s of %d calls", kind.value, len(group))
        try:
            items = await self._exchange(kind, group)
        except Exception as e:
            for p in group:
                if not p.future.done():
                    p.future.set_exception(e)
            return
        for p, item in zip(group, items):
            if p.future.done():
                continue
            try:
                p.future.set_result(Envelope.from_wire(item))
            except ProtocolError as e:
                p.future.set_exception(e)

    async def _exchange(self, kind: ProcedureKind, group: list[_Pending]) -> list[Any]:
        paths = ",".join(p.op.path for p in group)
        method, kwargs = _json_request(kind, [p.payload for p in group], batch=True)
        response = await self._send(method, f"{self.url}/{paths}", **kwargs)
        body = self._body(response)
        if isinstance(body, dict):
            # the whole request was rejected before any call ran
            return [body] * len(group)
        if not isinstance(body, list) or len(body) != len(group):
            raise ProtocolError(f"batch of {len(group)} calls answered with {body!r:.200}")
        return body


def _cancel_when_abandoned(task: asyncio.Task, group: list[_Pending], _future: asyncio.Future) -> None:
    if not task.done() and all(p.future.cancelled() for p in group):
        task.cancel()


EMPTY_FORM_BOUNDARY = "formrpc-empty-form"


def _multipart_body(form: FormData) -> dict[str, Any]:
    """httpx request kwargs. An empty form still goes out as multipart, as a lone closing boundary."""
    if len(form):
        return {"files": _multipart_files(form)}
    return {
        "content": f"--{EMPTY_FORM_BOUNDARY}--\r\n".encode(),
        "headers": {"content-type": f"multipart/form-data; boundary={EMPTY_FORM_BOUNDARY}"},
    }


def _multipart_files(form: FormData) -> list[tuple[str, tuple[Any, ...]]]:
    """Every field as a multipart part, in order; text parts have no filename."""
    parts: list[tuple[str, tuple[Any, ...]]] = []
    for name, value in form.items():
        if isinstance(value, File):
            parts.append((name, (value.filename, value.content, value.content_type)))
        else:
            parts.append((name, (None, value)))
    return parts


class FormDataLink(_HttpLink):
    """Multipart POST, one call per exchange. Only mutations carry form data."""

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        if op.kind is not ProcedureKind.MUTATION:
            raise RpcError("METHOD_NOT_SUPPORTED", "form data can only be sent with mutations")
        if not isinstance(op.input, FormData):
            raise RpcError("BAD_REQUEST", f"input of {op.path!r} is not FormData")
        response = await self._send("POST", f"{self.url}/{op.path}", **_multipart_body(op.input))
        return Envelope.from_wire(self._body(response))
