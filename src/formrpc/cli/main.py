"""
CLI: serve an application, call a procedure.

    formrpc serve myapp.main:app --port 8000
    formrpc call http://localhost:8000/rpc getUser --query --input '{"name": "bob"}'
    formrpc call http://localhost:8000/rpc uploadFile --file bobfile=./bob.txt --field note=hi
"""
from __future__ import annotations

import asyncio
import importlib
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, List, Optional

import httpx
import typer

from formrpc.client import File, FormData, FormDataLink, HttpLink, RpcClient, SplitLink, is_form_data
from formrpc.core.app import Application
from formrpc.rpc.errors import RpcError

app = typer.Typer(help="formrpc CLI: serve an application, call a procedure.")


def _load_target(target: str) -> Application:
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter("expected 'module:attribute'", param_hint="TARGET")
    obj = getattr(importlib.import_module(module_name), attr)
    if callable(obj) and not isinstance(obj, Application):
        obj = obj()
    if not isinstance(obj, Application):
        raise typer.BadParameter(f"{target} is not a formrpc Application", param_hint="TARGET")
    return obj


def _split_pair(value: str, option: str) -> tuple[str, str]:
    name, sep, rest = value.partition("=")
    if not sep or not name:
        raise typer.BadParameter(f"expected name=value, got {value!r}", param_hint=option)
    return name, rest


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


async def _call(url: str, path: str, payload: Any, query: bool) -> Any:
    async with _http_client() as http:
        client = RpcClient([
            SplitLink(
                condition=lambda op: is_form_data(op.input),
                true=FormDataLink(url, client=http),
                false=HttpLink(url, client=http),
            ),
        ])
        if query:
            return await client.query(path, payload)
        return await client.mutation(path, payload)


@app.command()
def serve(
    target: str = typer.Argument(..., help="Application as module:attribute (or a factory)"),
    host: str = typer.Option("127.0.0.1", "--host", "-h"),
    port: int = typer.Option(8000, "--port", "-p"),
) -> None:
    """Serve an Application with uvicorn."""
    application = _load_target(target)
    logging.basicConfig(level=application.config.log_level.upper())
    application.run(host=host, port=port)


@app.command()
def call(
    url: str = typer.Argument(..., help="RPC base URL, e.g. http://localhost:8000/rpc"),
    path: str = typer.Argument(..., help="Procedure path"),
    input: Optional[str] = typer.Option(None, "--input", "-i", help="JSON input"),
    field: Optional[List[str]] = typer.Option(None, "--field", "-F", help="Form text field name=value"),
    file: Optional[List[str]] = typer.Option(None, "--file", "-f", help="Form file field name=path"),
    query: bool = typer.Option(False, "--query", "-q", help="Call as query instead of mutation"),
) -> None:
    """Call a procedure and print its result as JSON."""
    if field or file:
        if input is not None or query:
            raise typer.BadParameter("--field/--file build a form mutation; drop --input and --query")
        payload: Any = FormData()
        for item in field or []:
            payload.append(*_split_pair(item, "--field"))
        for item in file or []:
            name, filename = _split_pair(item, "--file")
            content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
            payload.append(name, File.from_path(Path(filename), content_type))
    else:
        try:
            payload = json.loads(input) if input is not None else None
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"not JSON: {e}", param_hint="--input") from e
    try:
        result = asyncio.run(_call(url, path, payload, query))
    except RpcError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    app()
