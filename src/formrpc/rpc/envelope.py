"""Result envelope: {"ok": true, "data": ...} or {"ok": false, "error": {"code": ..., "message": ...}}."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from pydantic_core import to_jsonable_python

from formrpc.rpc.errors import ProtocolError, RpcError, error_from_wire


@dataclass(frozen=True)
class Envelope:
    """Outcome of one call. Exactly one of data/error is meaningful, selected by ok."""

    ok: bool
    data: Any = None
    error: RpcError | None = None

    @classmethod
    def success(cls, data: Any) -> Envelope:
        return cls(ok=True, data=to_jsonable_python(data))

    @classmethod
    def failure(cls, error: RpcError) -> Envelope:
        return cls(ok=False, error=error)

    @property
    def http_status(self) -> int:
        return 200 if self.ok else self.error.http_status

    def to_wire(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error.to_wire()}

    @classmethod
    def from_wire(cls, obj: Any) -> Envelope:
        """Parse a decoded JSON value; anything but the two envelope shapes is a ProtocolError."""
        if not isinstance(obj, dict) or not isinstance(obj.get("ok"), bool):
            raise ProtocolError(f"response is not a result envelope: {obj!r:.200}")
        if obj["ok"]:
            return cls(ok=True, data=obj.get("data"))
        err = obj.get("error")
        if not isinstance(err, dict) or not isinstance(err.get("code"), str):
            raise ProtocolError(f"malformed error envelope: {obj!r:.200}")
        message = err.get("message")
        issues = err.get("issues")
        return cls.failure(
            error_from_wire(
                err["code"],
                message if isinstance(message, str) else "",
                issues if isinstance(issues, list) else None,
            )
        )

    def unwrap(self) -> Any:
        """Return data or raise the carried error."""
        if self.ok:
            return self.data
        raise self.error


def batch_http_status(envelopes: Iterable[Envelope]) -> int:
    """Common status of all envelopes, 207 when they disagree."""
    statuses = {e.http_status for e in envelopes}
    if len(statuses) == 1:
        return statuses.pop()
    return 207 if statuses else 200
