"""Shared fixtures: the users/upload router from the form-data scenarios, served in-process."""
from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import httpx
import pytest
from pydantic import BaseModel, ConfigDict

from formrpc import Application, NotFoundError, PydanticValidator, RouterBuilder, RpcModule
from formrpc.client import FormDataLink, HttpBatchLink, RpcClient, SplitLink, is_form_data
from formrpc.rpc import FilePart, UploadedFile

BASE_URL = "http://testserver/rpc"


class User(BaseModel):
    name: str
    age: int


class GetUserInput(BaseModel):
    name: str


class UploadInput(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    bobfile: UploadedFile
    joefile: FilePart


@dataclass
class UserStore:
    users: list[User] = field(default_factory=list)
    seen_files: list[FilePart] = field(default_factory=list)
    consumed_in_handler: list[bool] = field(default_factory=list)

    def find(self, name: str) -> User | None:
        return next((u for u in self.users if u.name == name), None)


def build_router():
    rpc = RouterBuilder()

    @rpc.query("getUser", input=GetUserInput)
    def get_user(input: GetUserInput, ctx) -> User:
        user = ctx.deps.find(input.name)
        if user is None:
            raise NotFoundError(f"no user named {input.name!r}")
        return user

    @rpc.mutation("createUser", input=User)
    def create_user(input: User, ctx) -> User:
        ctx.deps.users.append(input)
        return input

    @rpc.mutation("uploadFile", input=PydanticValidator(UploadInput, drain=["bobfile"]))
    async def upload_file(input: UploadInput, ctx) -> dict[str, Any]:
        ctx.deps.seen_files.append(input.joefile)
        ctx.deps.consumed_in_handler.append(input.joefile.consumed)
        return {"bob": input.bobfile.text(), "joeFilename": input.joefile.filename}

    @rpc.query("echo")
    def echo(input):
        return input

    @rpc.mutation("boom")
    def boom(input):
        raise RuntimeError("secret database password in stack")

    return rpc.build()


@pytest.fixture
def store() -> UserStore:
    return UserStore()


@pytest.fixture
def app(store: UserStore) -> Application:
    return Application().register(RpcModule(build_router(), deps=store).server("/rpc"))


@pytest.fixture
def http_factory(app: Application):
    """Async context manager yielding an httpx client wired to the app, no sockets."""

    @contextlib.asynccontextmanager
    async def open_http() -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
            yield http

    return open_http


@pytest.fixture
def client_factory(http_factory):
    """Client with the split link: FormData inputs go multipart, the rest batched JSON."""

    @contextlib.asynccontextmanager
    async def open_client() -> AsyncIterator[RpcClient]:
        async with http_factory() as http:
            yield RpcClient([
                SplitLink(
                    condition=lambda op: is_form_data(op.input),
                    true=FormDataLink(BASE_URL, client=http),
                    false=HttpBatchLink(BASE_URL, client=http),
                ),
            ])

    return open_client
