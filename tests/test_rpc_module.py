"""Wire-level behaviour of the HTTP endpoint: envelopes, statuses, content-type negotiation."""
import asyncio
import json

import httpx

from formrpc import Application, RpcConfig, RpcModule
from formrpc.server import ContentTypeHandlerChain, JsonContentTypeHandler

from conftest import build_router


def _run(http_factory, method, url, **kwargs):
    async def scenario():
        async with http_factory() as http:
            return await http.request(method, url, **kwargs)

    return asyncio.run(scenario())


def test_query_travels_as_get_with_input_parameter(http_factory):
    response = _run(http_factory, "GET", "/rpc/echo", params={"input": json.dumps({"input": {"a": [1, 2]}})})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": {"a": [1, 2]}}


def test_query_without_input_gets_none(http_factory):
    response = _run(http_factory, "GET", "/rpc/echo")
    assert response.json() == {"ok": True, "data": None}


def test_mutation_body_round_trips_through_validator(http_factory, store):
    response = _run(http_factory, "POST", "/rpc/createUser", json={"input": {"name": "eve", "age": "31"}})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": {"name": "eve", "age": 31}}
    assert store.find("eve").age == 31


def test_unknown_user_is_an_error_envelope_not_an_exception(http_factory):
    response = _run(http_factory, "GET", "/rpc/getUser", params={"input": json.dumps({"input": {"name": "unknown"}})})
    assert response.status_code == 404
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert set(body["error"]) == {"code", "message"}


def test_unknown_procedure_is_not_found(http_factory):
    response = _run(http_factory, "POST", "/rpc/nope", json={"input": None})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_kind_mismatch_is_a_routing_error(http_factory):
    response = _run(http_factory, "POST", "/rpc/getUser", json={"input": {"name": "bob"}})
    assert response.status_code == 404
    assert "query" in response.json()["error"]["message"]


def test_malformed_json_is_a_parse_error(http_factory):
    response = _run(
        http_factory, "POST", "/rpc/createUser",
        content=b'{"input": ', headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PARSE_ERROR"


def test_validation_error_carries_issues(http_factory):
    response = _run(http_factory, "POST", "/rpc/createUser", json={"input": {"name": "eve"}})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "BAD_REQUEST"
    assert error["issues"][0]["path"] == "age"


def test_internal_error_is_500_without_details(http_factory):
    response = _run(http_factory, "POST", "/rpc/boom", json={"input": 1})
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": {"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error"}}


def test_batch_results_are_demultiplexed_and_isolated(http_factory):
    payload = [{"input": {"name": "a", "age": 1}}, {"input": {"name": "b"}}, {"input": {"name": "c", "age": 3}}]
    response = _run(http_factory, "POST", "/rpc/createUser,createUser,createUser", params={"batch": "1"}, json=payload)
    assert response.status_code == 207
    first, second, third = response.json()
    assert first == {"ok": True, "data": {"name": "a", "age": 1}}
    assert second["error"]["code"] == "BAD_REQUEST"
    assert third == {"ok": True, "data": {"name": "c", "age": 3}}


def test_batch_of_successes_is_200(http_factory):
    payload = json.dumps([{"input": 1}, {"input": "two"}])
    response = _run(http_factory, "GET", "/rpc/echo,echo", params={"batch": "1", "input": payload})
    assert response.status_code == 200
    assert response.json() == [{"ok": True, "data": 1}, {"ok": True, "data": "two"}]


def test_batch_length_mismatch_rejects_whole_request(http_factory):
    response = _run(http_factory, "POST", "/rpc/createUser,createUser", params={"batch": "1"}, json=[{"input": {}}])
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PARSE_ERROR"


def test_multipart_cannot_be_batched(http_factory):
    response = _run(
        http_factory, "POST", "/rpc/createUser,createUser",
        params={"batch": "1"}, files=[("name", (None, "bob"))],
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PARSE_ERROR"


def test_multipart_interleaves_text_and_files(http_factory):
    files = [
        ("bobfile", ("bob.txt", b"hi bob", "text/plain")),
        ("note", (None, "between")),
        ("joefile", ("joe.txt", b"hi joe", "text/plain")),
    ]
    response = _run(http_factory, "POST", "/rpc/uploadFile", files=files)
    assert response.json() == {"ok": True, "data": {"bob": "hi bob", "joeFilename": "joe.txt"}}


def test_unsupported_media_type_never_decodes():
    decoded = []

    class SpyHandler:
        def __init__(self, media_type):
            self.media_type = media_type

        def can_handle(self, headers):
            return headers.get("content-type", "").startswith(self.media_type)

        async def decode(self, request):
            decoded.append(self.media_type)
            raise AssertionError("must not decode")

    app = Application().register(
        RpcModule(build_router()).server("/rpc", content_types=[SpyHandler("multipart/form-data"), SpyHandler("application/json")])
    )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
            return await http.post("/rpc/createUser", content=b"name=bob", headers={"content-type": "text/plain"})

    response = asyncio.run(scenario())
    assert response.status_code == 415
    assert response.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"
    assert decoded == []


def test_claim_decision_is_deterministic():
    chain = ContentTypeHandlerChain([JsonContentTypeHandler()])
    headers = {"content-type": "application/json; charset=utf-8"}
    assert {id(chain.select(headers)) for _ in range(5)} == {id(chain.handlers[0])}
    assert all(JsonContentTypeHandler().can_handle({}) for _ in range(3))


def test_batch_over_configured_limit_is_rejected_before_any_call_runs(store):
    app = Application(RpcConfig(max_batch_size=2)).register(RpcModule(build_router(), deps=store).server())

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
            payload = [{"input": {"name": n, "age": 1}} for n in "abc"]
            return await http.post("/rpc/createUser,createUser,createUser", params={"batch": "1"}, json=payload)

    response = asyncio.run(scenario())
    assert response.status_code == 413
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
    assert store.users == []
