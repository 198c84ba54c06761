"""RPC errors: one base type with a machine-readable code, subclasses per failure category."""
from __future__ import annotations

from typing import Any

HTTP_STATUS_BY_CODE: dict[str, int] = {
    "PARSE_ERROR": 400,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "METHOD_NOT_SUPPORTED": 405,
    "TIMEOUT": 408,
    "CONFLICT": 409,
    "PRECONDITION_FAILED": 412,
    "PAYLOAD_TOO_LARGE": 413,
    "UNSUPPORTED_MEDIA_TYPE": 415,
    "TOO_MANY_REQUESTS": 429,
    "CLIENT_CLOSED_REQUEST": 499,
    "INTERNAL_SERVER_ERROR": 500,
    "NOT_IMPLEMENTED": 501,
}


def http_status_for(code: str) -> int:
    """HTTP status for an error code; unknown codes are server errors."""
    return HTTP_STATUS_BY_CODE.get(code, 500)


class RpcError(Exception):
    """RPC call failed: server returned error envelope or transport failed."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        self.code = code or type(self).code
        self.message = message or self.code.replace("_", " ").capitalize()
        super().__init__(f"[{self.code}] {self.message}")

    @property
    def http_status(self) -> int:
        return http_status_for(self.code)

    def to_wire(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class TransportError(RpcError):
    """Network or connection failure while talking to the server. Never retried here."""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None, message)


class ProtocolError(RpcError):
    """The server answered with something that is not a result envelope."""

    code = "PROTOCOL_ERROR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None, message)


class UnsupportedMediaTypeError(RpcError):
    code = "UNSUPPORTED_MEDIA_TYPE"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None, message)


class DecodeError(RpcError):
    """Malformed body for the claimed content type."""

    code = "PARSE_ERROR"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None, message)


class NotFoundError(RpcError):
    """Unknown procedure path, kind mismatch, or a missing record reported by a handler."""

    code = "NOT_FOUND"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None, message)


class ValidationError(RpcError):
    """Input failed schema validation. issues: [{"path": "age", "message": "..."}]."""

    code = "BAD_REQUEST"

    def __init__(self, message: str | None = None, issues: list[dict[str, Any]] | None = None) -> None:
        self.issues = list(issues or [])
        super().__init__(None, message or "Input validation failed")

    def to_wire(self) -> dict[str, Any]:
        wire = super().to_wire()
        if self.issues:
            wire["issues"] = self.issues
        return wire


class ApplicationError(RpcError):
    """Raised by procedure handlers: ApplicationError("CONFLICT", "user exists")."""


_CLASSES_BY_CODE: dict[str, type[RpcError]] = {
    cls.code: cls
    for cls in (UnsupportedMediaTypeError, DecodeError, NotFoundError, TransportError, ProtocolError)
}


def error_from_wire(code: str, message: str, issues: list[dict[str, Any]] | None = None) -> RpcError:
    """Rebuild the most specific error type for a code read from an envelope."""
    if code == ValidationError.code:
        return ValidationError(message, issues)
    cls = _CLASSES_BY_CODE.get(code)
    if cls is not None:
        return cls(message)
    return ApplicationError(code, message)
