"""Procedure definitions: path + kind + validator + handler."""
from __future__ import annotations

import enum
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from formrpc.rpc.validators import Validator


class ProcedureKind(str, enum.Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class CallContext:
    """Second handler argument: what is being called and the server's dependencies (store, services)."""

    path: str
    kind: ProcedureKind
    headers: Mapping[str, str] = field(default_factory=dict)
    deps: Any = None


def _wants_context(handler: Callable[..., Any]) -> bool:
    try:
        params = list(inspect.signature(handler).parameters.values())
    except (TypeError, ValueError):
        return False
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return True
    return len(positional) >= 2


@dataclass(frozen=True)
class Procedure:
    """Registered once when the router is built. handler(input) or handler(input, ctx), sync or async."""

    path: str
    kind: ProcedureKind
    validator: Validator
    handler: Callable[..., Any]
    takes_context: bool = False

    @classmethod
    def create(cls, path: str, kind: ProcedureKind, validator: Validator, handler: Callable[..., Any]) -> Procedure:
        return cls(path, kind, validator, handler, _wants_context(handler))

    def invoke(self, value: Any, ctx: CallContext) -> Any:
        if self.takes_context:
            return self.handler(value, ctx)
        return self.handler(value)
