"""
Procedure router: built once with RouterBuilder, then read-only.

    rpc = RouterBuilder()

    @rpc.query("getUser", input=GetUserInput)
    def get_user(input, ctx): ...

    rpc.mutation("createUser", create_user, input=CreateUserInput)
    router = rpc.build()
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping

from formrpc.rpc.errors import NotFoundError
from formrpc.rpc.procedure import Procedure, ProcedureKind
from formrpc.rpc.validators import as_validator


class Router:
    """Exact-path lookup over an immutable registry."""

    def __init__(self, procedures: Mapping[str, Procedure]) -> None:
        self._procedures = MappingProxyType(dict(procedures))

    @property
    def procedures(self) -> Mapping[str, Procedure]:
        return self._procedures

    def __contains__(self, path: object) -> bool:
        return path in self._procedures

    def __iter__(self) -> Iterator[str]:
        return iter(self._procedures)

    def __len__(self) -> int:
        return len(self._procedures)

    def resolve(self, path: str, kind: ProcedureKind | str | None = None) -> Procedure:
        """Procedure for path; kind, when given, must match the declared kind."""
        procedure = self._procedures.get(path)
        if procedure is None:
            raise NotFoundError(f"No procedure found on path {path!r}")
        if kind is not None and ProcedureKind(kind) is not procedure.kind:
            raise NotFoundError(
                f"Procedure {path!r} is a {procedure.kind.value}, cannot be called as a {ProcedureKind(kind).value}"
            )
        return procedure


class RouterBuilder:
    """Collects procedures; build() freezes them into a Router. Duplicate paths are rejected."""

    def __init__(self) -> None:
        self._procedures: dict[str, Procedure] = {}

    def _add(self, path: str, kind: ProcedureKind, handler: Callable[..., Any] | None, input: Any) -> Any:
        def register(fn: Callable[..., Any]) -> Callable[..., Any]:
            if path in self._procedures:
                raise ValueError(f"Duplicate procedure path {path!r}")
            self._procedures[path] = Procedure.create(path, kind, as_validator(input), fn)
            return fn

        if handler is None:
            return register
        register(handler)
        return self

    def query(self, path: str, handler: Callable[..., Any] | None = None, *, input: Any = None) -> Any:
        """Register a query. Without handler, returns a decorator."""
        return self._add(path, ProcedureKind.QUERY, handler, input)

    def mutation(self, path: str, handler: Callable[..., Any] | None = None, *, input: Any = None) -> Any:
        return self._add(path, ProcedureKind.MUTATION, handler, input)

    def subscription(self, path: str, handler: Callable[..., Any] | None = None, *, input: Any = None) -> Any:
        return self._add(path, ProcedureKind.SUBSCRIPTION, handler, input)

    def include(self, prefix: str, other: RouterBuilder | Router) -> RouterBuilder:
        """Mount another router's procedures under "prefix." paths."""
        procedures = other.procedures if isinstance(other, Router) else other._procedures
        for path, proc in procedures.items():
            full_path = f"{prefix}.{path}" if prefix else path
            if full_path in self._procedures:
                raise ValueError(f"Duplicate procedure path {full_path!r}")
            self._procedures[full_path] = Procedure(full_path, proc.kind, proc.validator, proc.handler, proc.takes_context)
        return self

    def build(self) -> Router:
        return Router(self._procedures)
