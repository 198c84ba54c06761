"""
Links: client middleware. A link gets the operation and a forward() continuation
to the next link; a terminal link answers without forwarding.

Links return the call's Envelope. Failures that never produced an envelope
(TransportError, ProtocolError) are raised.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Protocol, Union, runtime_checkable

from formrpc.rpc.envelope import Envelope
from formrpc.rpc.errors import RpcError, TransportError
from formrpc.rpc.procedure import ProcedureKind

logger = logging.getLogger(__name__)

MAX_CHAIN_LENGTH = 32

_operation_ids = itertools.count(1)


@dataclass(frozen=True)
class Operation:
    """One call: created per invocation, consumed once by the link chain."""

    path: str
    kind: ProcedureKind
    input: Any = None
    id: int = field(default_factory=lambda: next(_operation_ids))
    context: dict[str, Any] = field(default_factory=dict)


Forward = Callable[[Operation], Awaitable[Envelope]]


@runtime_checkable
class Link(Protocol):
    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        ...


LinkLike = Union[Link, Callable[[Operation, Forward], Awaitable[Envelope]]]


def _handler_of(link: LinkLike) -> Callable[[Operation, Forward], Awaitable[Envelope]]:
    if isinstance(link, Link):
        return link.handle
    if callable(link):
        return link
    raise TypeError(f"not a link: {link!r}")


class LinkChain:
    """
    Ordered links, fixed at construction. execute() threads the continuation by index,
    so depth never exceeds the chain length (capped at MAX_CHAIN_LENGTH).
    """

    def __init__(self, links: Iterable[LinkLike]) -> None:
        handlers = tuple(_handler_of(link) for link in links)
        if not handlers:
            raise ValueError("a link chain needs at least one link")
        if len(handlers) > MAX_CHAIN_LENGTH:
            raise ValueError(f"a link chain holds at most {MAX_CHAIN_LENGTH} links, got {len(handlers)}")
        self._handlers = handlers

    def __len__(self) -> int:
        return len(self._handlers)

    async def execute(self, op: Operation) -> Envelope:
        return await self._dispatch(0, op)

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        """A chain used as a link is terminal."""
        return await self.execute(op)

    async def _dispatch(self, index: int, op: Operation) -> Envelope:
        if index >= len(self._handlers):
            raise RpcError("INTERNAL_SERVER_ERROR", f"no terminating link handled {op.kind.value} {op.path!r}")

        async def forward(next_op: Operation) -> Envelope:
            return await self._dispatch(index + 1, next_op)

        return await self._handlers[index](op, forward)


def _as_chain(branch: LinkLike | Iterable[LinkLike]) -> LinkChain:
    if isinstance(branch, LinkChain):
        return branch
    if isinstance(branch, (list, tuple)):
        return LinkChain(branch)
    return LinkChain([branch])


class SplitLink:
    """
    Route each operation to exactly one of two sub-chains.
    condition(op) must be pure; it is evaluated once per call. Terminal.
    """

    def __init__(
        self,
        condition: Callable[[Operation], bool],
        true: LinkLike | Iterable[LinkLike],
        false: LinkLike | Iterable[LinkLike],
    ) -> None:
        self.condition = condition
        self.true = _as_chain(true)
        self.false = _as_chain(false)

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        branch = self.true if self.condition(op) else self.false
        return await branch.execute(op)


class LoggerLink:
    """Log every operation and its outcome, then forward."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self.log = log or logger
        self.level = level

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        self.log.log(self.level, "-> %s %s #%d", op.kind.value, op.path, op.id)
        started = time.perf_counter()
        try:
            envelope = await forward(op)
        except RpcError as e:
            self.log.log(self.level, "<- %s %s #%d raised %s", op.kind.value, op.path, op.id, e)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        outcome = "ok" if envelope.ok else envelope.error.code
        self.log.log(self.level, "<- %s %s #%d %s in %.1fms", op.kind.value, op.path, op.id, outcome, elapsed_ms)
        return envelope


class RetryLink:
    """Retry TransportError up to attempts times in total. Server answers, even errors, are never retried."""

    def __init__(self, attempts: int = 3, backoff: float = 0.0) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.attempts = attempts
        self.backoff = backoff

    async def handle(self, op: Operation, forward: Forward) -> Envelope:
        attempt = 1
        while True:
            try:
                return await forward(op)
            except TransportError as e:
                if attempt >= self.attempts:
                    raise
                logger.warning("%s %s #%d attempt %d failed: %s", op.kind.value, op.path, op.id, attempt, e)
                if self.backoff:
                    await asyncio.sleep(self.backoff * 2 ** (attempt - 1))
                attempt += 1
