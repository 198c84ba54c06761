"""
Validator adapters: any schema becomes parse(raw) -> typed value (sync or awaitable).

Failures are always formrpc ValidationError with per-field issues, whatever the
underlying library raised.
"""
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Iterable, Protocol, get_origin, runtime_checkable

import pydantic
from pydantic import TypeAdapter

from formrpc.rpc.errors import ValidationError
from formrpc.rpc.files import FilePart


@runtime_checkable
class Validator(Protocol):
    """parse(raw) returns the typed input or an awaitable of it; raises ValidationError."""

    def parse(self, raw: Any) -> Any | Awaitable[Any]:
        ...


def _issue_path(loc: Iterable[Any]) -> str:
    return ".".join(str(part) for part in loc)


def validation_error_from_pydantic(exc: pydantic.ValidationError) -> ValidationError:
    issues = [
        {"path": _issue_path(err.get("loc", ())), "message": err.get("msg", "invalid value")}
        for err in exc.errors(include_url=False)
    ]
    first = issues[0] if issues else None
    if first is None:
        message = "Input validation failed"
    elif first["path"]:
        message = f"{first['path']}: {first['message']}"
    else:
        message = first["message"]
    return ValidationError(message, issues)


class PassthroughValidator:
    """No schema: handler receives the decoded input as is."""

    def parse(self, raw: Any) -> Any:
        return raw


class PydanticValidator:
    """
    Validate with pydantic (BaseModel, dataclass, TypedDict, plain types).
    drain: field names whose FilePart is read into an UploadedFile first;
    other file parts reach the schema unread.
    """

    def __init__(self, schema: Any, *, drain: Iterable[str] = ()) -> None:
        self.schema = schema
        self.drain = tuple(drain)
        self._adapter = TypeAdapter(schema)

    async def parse(self, raw: Any) -> Any:
        if self.drain and isinstance(raw, dict):
            raw = dict(raw)
            for name in self.drain:
                value = raw.get(name)
                if isinstance(value, FilePart):
                    raw[name] = await value.materialize()
        try:
            return self._adapter.validate_python(raw)
        except pydantic.ValidationError as e:
            raise validation_error_from_pydantic(e) from e


class FunctionValidator:
    """Plain callable (sync or async) as validator. ValueError/TypeError count as validation failures."""

    def __init__(self, fn: Callable[[Any], Any]) -> None:
        self.fn = fn

    async def parse(self, raw: Any) -> Any:
        try:
            result = self.fn(raw)
            if inspect.isawaitable(result):
                result = await result
        except ValidationError:
            raise
        except pydantic.ValidationError as e:
            raise validation_error_from_pydantic(e) from e
        except (ValueError, TypeError) as e:
            raise ValidationError(str(e) or type(e).__name__) from e
        return result


def as_validator(obj: Any) -> Validator:
    """None -> passthrough; object with parse() -> itself; callable -> FunctionValidator; else pydantic."""
    if obj is None:
        return PassthroughValidator()
    if isinstance(obj, Validator):
        return obj
    if isinstance(obj, type) or get_origin(obj) is not None or not callable(obj):
        return PydanticValidator(obj)
    return FunctionValidator(obj)
