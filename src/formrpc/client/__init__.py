from formrpc.client.client import ProcedureProxy, RpcClient
from formrpc.client.form_data import File, FormData, is_form_data
from formrpc.client.http import FormDataLink, HttpBatchLink, HttpLink
from formrpc.client.links import Link, LinkChain, LoggerLink, Operation, RetryLink, SplitLink

__all__ = [
    "File",
    "FormData",
    "FormDataLink",
    "HttpBatchLink",
    "HttpLink",
    "Link",
    "LinkChain",
    "LoggerLink",
    "Operation",
    "ProcedureProxy",
    "RetryLink",
    "RpcClient",
    "SplitLink",
    "is_form_data",
]
