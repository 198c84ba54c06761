"""
formrpc: schema-validated RPC over HTTP.
Each call travels as JSON (batchable) or multipart form data (file uploads),
chosen per call by the client's links; the server negotiates by content type.
"""
from formrpc.core import Application, Module, RpcConfig
from formrpc.rpc import (
    ApplicationError,
    CallContext,
    NotFoundError,
    ProcedureKind,
    PydanticValidator,
    RouterBuilder,
    RpcError,
    ValidationError,
)
from formrpc.server import RpcModule

__all__ = [
    "Application",
    "ApplicationError",
    "CallContext",
    "Module",
    "NotFoundError",
    "ProcedureKind",
    "PydanticValidator",
    "RouterBuilder",
    "RpcConfig",
    "RpcError",
    "RpcModule",
    "ValidationError",
]
