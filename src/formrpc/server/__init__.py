from formrpc.server.content_types import (
    Call,
    ContentTypeHandler,
    ContentTypeHandlerChain,
    DecodedRequest,
    FormDataContentTypeHandler,
    JsonContentTypeHandler,
    default_content_type_handlers,
)
from formrpc.server.rpc_module import RpcEndpoint, RpcModule

__all__ = [
    "Call",
    "ContentTypeHandler",
    "ContentTypeHandlerChain",
    "DecodedRequest",
    "FormDataContentTypeHandler",
    "JsonContentTypeHandler",
    "RpcEndpoint",
    "RpcModule",
    "default_content_type_handlers",
]
