"""Single config object: passed to Application(config=...), read by modules and the CLI."""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Mapping

_TRUE = {"1", "true", "yes", "on"}


def _coerce(value: str, default: Any) -> Any:
    if isinstance(default, bool):
        return value.strip().lower() in _TRUE
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


@dataclass
class RpcConfig:
    """
    Server and client settings. Defaults work for tests and local runs;
    RpcConfig.from_env() overrides them from FORMRPC_* variables.
    """

    base_path: str = "/rpc"
    max_batch_size: int = 50
    batch_wait: float = 0.0
    max_files: int = 1000
    max_fields: int = 1000
    expose_internal_errors: bool = False
    log_level: str = "INFO"

    @classmethod
    def load_from_env(
        cls,
        prefix: str = "FORMRPC_",
        environ: Mapping[str, str] | None = None,
        **defaults: Any,
    ) -> dict[str, Any]:
        """Load from os.environ with prefix and defaults. Returns dict for RpcConfig(**...)."""
        env = os.environ if environ is None else environ
        result = dict(defaults)
        for key, value in env.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower()
                result[name] = value
        return result

    @classmethod
    def from_env(cls, prefix: str = "FORMRPC_", environ: Mapping[str, str] | None = None) -> RpcConfig:
        """Known fields only, values coerced to the field's type; unknown variables are ignored."""
        raw = cls.load_from_env(prefix, environ)
        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if f.name not in raw:
                continue
            try:
                kwargs[f.name] = _coerce(raw[f.name], f.default)
            except ValueError as e:
                raise ValueError(f"{prefix}{f.name.upper()}: {e}") from e
        return cls(**kwargs)
