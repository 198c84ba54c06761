from formrpc.core.app import Application
from formrpc.core.config import RpcConfig
from formrpc.core.module import Module

__all__ = [
    "Application",
    "Module",
    "RpcConfig",
]
