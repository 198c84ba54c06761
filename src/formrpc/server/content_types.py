"""
Content-type handlers: claim a request by its headers, decode its body into calls.

Handlers are tried in registration order; the first claim wins and is the only
one allowed to read the body. The call kind comes from the HTTP method
(GET -> query, POST -> mutation); procedure paths come from the URL,
comma-joined for batches (?batch=1).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from formrpc.rpc.errors import DecodeError, RpcError, UnsupportedMediaTypeError
from formrpc.rpc.files import FilePart
from formrpc.rpc.procedure import ProcedureKind


@dataclass(frozen=True)
class Call:
    path: str
    kind: ProcedureKind
    input: Any = None


@dataclass(frozen=True)
class DecodedRequest:
    calls: list[Call] = field(default_factory=list)
    batch: bool = False


@runtime_checkable
class ContentTypeHandler(Protocol):
    """can_handle sees headers only; decode may read (and stream) the body."""

    def can_handle(self, headers: Mapping[str, str]) -> bool:
        ...

    async def decode(self, request: Request) -> DecodedRequest:
        ...


def media_type(headers: Mapping[str, str]) -> str:
    """Lower-cased media type without parameters; empty string when absent."""
    value = headers.get("content-type") or ""
    return value.split(";", 1)[0].strip().lower()


def call_kind(request: Request) -> ProcedureKind:
    return ProcedureKind.QUERY if request.method in ("GET", "HEAD") else ProcedureKind.MUTATION


def is_batch(request: Request) -> bool:
    return request.query_params.get("batch", "") in ("1", "true")


def call_paths(request: Request) -> list[str]:
    raw = request.path_params.get("path", "").strip("/")
    return raw.split(",") if is_batch(request) else [raw]


def _unwrap_input(item: Any, index: int | None = None) -> Any:
    where = "request body" if index is None else f"batch item {index}"
    if item is None:
        return None
    if not isinstance(item, dict):
        raise DecodeError(f"{where} must be an object like {{\"input\": ...}}")
    return item.get("input")


class JsonContentTypeHandler:
    """
    application/json, or no content type at all.
    Payload {"input": value}; batches use an array of those, one per path.
    GET carries the payload in the "input" query parameter.
    """

    def __init__(self, *, max_batch_size: int | None = None) -> None:
        self.max_batch_size = max_batch_size

    def can_handle(self, headers: Mapping[str, str]) -> bool:
        mt = media_type(headers)
        return mt == "" or mt == "application/json" or mt.endswith("+json")

    async def _read_payload(self, request: Request) -> Any:
        if call_kind(request) is ProcedureKind.QUERY:
            text = request.query_params.get("input", "")
        else:
            body = await request.body()
            try:
                text = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"request body is not valid UTF-8: {e}") from e
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"malformed JSON: {e}") from e

    async def decode(self, request: Request) -> DecodedRequest:
        kind = call_kind(request)
        paths = call_paths(request)
        if self.max_batch_size is not None and len(paths) > self.max_batch_size:
            raise RpcError("PAYLOAD_TOO_LARGE", f"batch of {len(paths)} calls exceeds {self.max_batch_size}")
        payload = await self._read_payload(request)
        if not is_batch(request):
            return DecodedRequest([Call(paths[0], kind, _unwrap_input(payload))])
        if payload is None:
            payload = [None] * len(paths)
        if not isinstance(payload, list):
            raise DecodeError("batch payload must be a JSON array")
        if len(payload) != len(paths):
            raise DecodeError(f"batch has {len(paths)} paths but {len(payload)} inputs")
        calls = [Call(path, kind, _unwrap_input(item, i)) for i, (path, item) in enumerate(zip(paths, payload))]
        return DecodedRequest(calls, batch=True)


class FormDataContentTypeHandler:
    """
    multipart/form-data, POST only, never batched.
    Input is a dict: field -> text, or FilePart for binary parts (lists when a field repeats).
    File parts are spooled by Starlette's parser while streaming; nothing reads them
    until a validator drains one.
    """

    def __init__(self, *, max_files: int = 1000, max_fields: int = 1000) -> None:
        self.max_files = max_files
        self.max_fields = max_fields

    def can_handle(self, headers: Mapping[str, str]) -> bool:
        return media_type(headers) == "multipart/form-data"

    async def decode(self, request: Request) -> DecodedRequest:
        if call_kind(request) is not ProcedureKind.MUTATION:
            raise DecodeError("multipart form data must be sent with POST")
        if is_batch(request):
            raise DecodeError("multipart form data cannot be batched")
        try:
            form = await request.form(max_files=self.max_files, max_fields=self.max_fields)
        except MultiPartException as e:
            raise DecodeError(f"malformed multipart body: {e.message}") from e
        except HTTPException as e:
            raise DecodeError(f"malformed multipart body: {e.detail}") from e

        data: dict[str, Any] = {}
        for name, value in form.multi_items():
            item = FilePart(name, value) if isinstance(value, UploadFile) else value
            if name not in data:
                data[name] = item
            elif isinstance(data[name], list):
                data[name].append(item)
            else:
                data[name] = [data[name], item]
        return DecodedRequest([Call(call_paths(request)[0], ProcedureKind.MUTATION, data)])


class ContentTypeHandlerChain:
    """Ordered handlers, fixed at construction."""

    def __init__(self, handlers: Sequence[ContentTypeHandler]) -> None:
        self._handlers = tuple(handlers)

    @property
    def handlers(self) -> tuple[ContentTypeHandler, ...]:
        return self._handlers

    def select(self, headers: Mapping[str, str]) -> ContentTypeHandler:
        """First handler claiming the headers; UnsupportedMediaTypeError if none does."""
        for handler in self._handlers:
            if handler.can_handle(headers):
                return handler
        raise UnsupportedMediaTypeError(f"Unsupported content type {headers.get('content-type')!r}")

    async def decode(self, request: Request) -> DecodedRequest:
        return await self.select(request.headers).decode(request)


def default_content_type_handlers(
    *,
    max_files: int = 1000,
    max_fields: int = 1000,
    max_batch_size: int | None = None,
) -> list[ContentTypeHandler]:
    return [
        FormDataContentTypeHandler(max_files=max_files, max_fields=max_fields),
        JsonContentTypeHandler(max_batch_size=max_batch_size),
    ]
