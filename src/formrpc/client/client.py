"""
RpcClient: facade over a link chain.

    client = RpcClient([
        LoggerLink(),
        SplitLink(
            condition=lambda op: is_form_data(op.input),
            true=FormDataLink(url),
            false=HttpBatchLink(url),
        ),
    ])
    user = await client.mutation("createUser", form)
    user = await client.proxy.getUser.query({"name": "bob"})
"""
from __future__ import annotations

from typing import Any, Iterable

from formrpc.client.links import LinkChain, LinkLike, Operation
from formrpc.rpc.envelope import Envelope
from formrpc.rpc.errors import RpcError
from formrpc.rpc.procedure import ProcedureKind


class RpcClient:
    """Calls return the envelope's data or raise its typed RpcError."""

    def __init__(self, links: LinkChain | Iterable[LinkLike]) -> None:
        self._chain = links if isinstance(links, LinkChain) else LinkChain(links)

    async def execute(self, op: Operation) -> Envelope:
        """Run an operation through the links and return the raw envelope."""
        return await self._chain.execute(op)

    async def call(self, path: str, kind: ProcedureKind | str, input: Any = None, **context: Any) -> Any:
        envelope = await self.execute(Operation(path=path, kind=ProcedureKind(kind), input=input, context=context))
        return envelope.unwrap()

    async def query(self, path: str, input: Any = None, **context: Any) -> Any:
        return await self.call(path, ProcedureKind.QUERY, input, **context)

    async def mutation(self, path: str, input: Any = None, **context: Any) -> Any:
        return await self.call(path, ProcedureKind.MUTATION, input, **context)

    async def subscription(self, path: str, input: Any = None, **context: Any) -> Any:
        raise RpcError("METHOD_NOT_SUPPORTED", f"subscription {path!r}: subscriptions are not supported over HTTP")

    @property
    def proxy(self) -> ProcedureProxy:
        """Attribute access builds dotted paths: client.proxy.users.byName.query(...)."""
        return ProcedureProxy(self, ())


class ProcedureProxy:
    def __init__(self, client: RpcClient, parts: tuple[str, ...]) -> None:
        self._client = client
        self._parts = parts

    def __getattr__(self, name: str) -> ProcedureProxy:
        if name.startswith("_"):
            raise AttributeError(name)
        return ProcedureProxy(self._client, self._parts + (name,))

    def __repr__(self) -> str:
        return f"ProcedureProxy({self.path!r})"

    @property
    def path(self) -> str:
        return ".".join(self._parts)

    async def query(self, input: Any = None, **context: Any) -> Any:
        return await self._client.query(self.path, input, **context)

    async def mutate(self, input: Any = None, **context: Any) -> Any:
        return await self._client.mutation(self.path, input, **context)
