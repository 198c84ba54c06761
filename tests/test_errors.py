"""Error taxonomy survives the wire in both directions."""
import pytest

from formrpc.rpc import (
    ApplicationError,
    DecodeError,
    Envelope,
    NotFoundError,
    ProtocolError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from formrpc.rpc.envelope import batch_http_status
from formrpc.rpc.errors import error_from_wire, http_status_for


@pytest.mark.parametrize(
    "error, status",
    [
        (UnsupportedMediaTypeError(), 415),
        (DecodeError("bad json"), 400),
        (NotFoundError(), 404),
        (ValidationError(issues=[{"path": "age", "message": "not a number"}]), 400),
        (ApplicationError("CONFLICT", "exists"), 409),
        (ApplicationError("TEAPOT", "odd"), 500),
    ],
)
def test_errors_round_trip_through_envelopes(error, status):
    wire = Envelope.failure(error).to_wire()
    rebuilt = Envelope.from_wire(wire)
    assert type(rebuilt.error) is type(error)
    assert rebuilt.error.to_wire() == error.to_wire()
    assert rebuilt.http_status == status


def test_unknown_codes_become_application_errors():
    error = error_from_wire("FORBIDDEN", "nope")
    assert isinstance(error, ApplicationError)
    assert http_status_for(error.code) == 403


@pytest.mark.parametrize(
    "body",
    [None, [], "ok", {"ok": "yes"}, {"data": 1}, {"ok": False}, {"ok": False, "error": "boom"}],
)
def test_anything_else_is_a_protocol_error(body):
    with pytest.raises(ProtocolError):
        Envelope.from_wire(body)


def test_batch_status():
    ok = Envelope.success(1)
    missing = Envelope.failure(NotFoundError())
    assert batch_http_status([ok, ok]) == 200
    assert batch_http_status([missing, missing]) == 404
    assert batch_http_status([ok, missing]) == 207
