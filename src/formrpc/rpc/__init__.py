from formrpc.rpc.envelope import Envelope
from formrpc.rpc.errors import (
    ApplicationError,
    DecodeError,
    NotFoundError,
    ProtocolError,
    RpcError,
    TransportError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from formrpc.rpc.executor import CallExecutor
from formrpc.rpc.files import FilePart, StreamConsumedError, UploadedFile
from formrpc.rpc.procedure import CallContext, Procedure, ProcedureKind
from formrpc.rpc.router import Router, RouterBuilder
from formrpc.rpc.validators import FunctionValidator, PydanticValidator, Validator, as_validator

__all__ = [
    "ApplicationError",
    "CallContext",
    "CallExecutor",
    "DecodeError",
    "Envelope",
    "FilePart",
    "FunctionValidator",
    "NotFoundError",
    "Procedure",
    "ProcedureKind",
    "ProtocolError",
    "PydanticValidator",
    "Router",
    "RouterBuilder",
    "RpcError",
    "StreamConsumedError",
    "TransportError",
    "UnsupportedMediaTypeError",
    "UploadedFile",
    "ValidationError",
    "Validator",
    "as_validator",
]
