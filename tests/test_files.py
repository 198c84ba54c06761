"""FilePart: single-use streams, exact bytes, metadata without draining."""
import asyncio
import tempfile

import pytest
from starlette.datastructures import Headers, UploadFile

from formrpc.rpc import FilePart, PydanticValidator, StreamConsumedError, UploadedFile


def _part(content: bytes, filename="bob.txt", content_type="text/plain", name="bobfile") -> FilePart:
    spooled = tempfile.SpooledTemporaryFile(max_size=1024)
    spooled.write(content)
    spooled.seek(0)
    upload = UploadFile(spooled, filename=filename, headers=Headers({"content-type": content_type}))
    return FilePart(name, upload)


def test_drain_yields_exact_bytes_then_refuses_second_read():
    payload = bytes(range(256)) * 1000
    part = _part(payload)

    async def scenario():
        first = await part.read()
        with pytest.raises(StreamConsumedError):
            await part.read()
        return first

    assert asyncio.run(scenario()) == payload
    assert part.consumed


def test_stream_is_chunked_and_single_use():
    part = _part(b"x" * 10)

    async def scenario():
        chunks = [chunk async for chunk in part.stream(chunk_size=4)]
        with pytest.raises(StreamConsumedError):
            part.stream()
        return chunks

    assert asyncio.run(scenario()) == [b"xxxx", b"xxxx", b"xx"]


def test_partially_drained_stream_stays_consumed():
    part = _part(b"abcdef")

    async def scenario():
        stream = part.stream(chunk_size=2)
        first = await stream.__anext__()
        await stream.aclose()
        with pytest.raises(StreamConsumedError):
            await part.read()
        return first

    assert asyncio.run(scenario()) == b"ab"


def test_closing_the_upload_underneath_counts_as_consumed():
    part = _part(b"hi joe")

    async def scenario():
        await part._upload.close()
        assert part.consumed
        with pytest.raises(StreamConsumedError):
            part.stream()

    asyncio.run(scenario())


def test_metadata_is_readable_without_draining():
    part = _part(b"hi joe", filename="joe.txt", name="joefile")
    assert part.filename == "joe.txt"
    assert part.content_type == "text/plain"
    assert part.name == "joefile"
    assert not part.consumed


def test_materialize_keeps_metadata():
    uploaded = asyncio.run(_part(b"hi bob").materialize())
    assert uploaded == UploadedFile(b"hi bob", "bob.txt", "text/plain")
    assert uploaded.text() == "hi bob"
    assert uploaded.size == 6


def test_validator_drains_only_named_fields():
    bob, joe = _part(b"hi bob"), _part(b"hi joe", filename="joe.txt", name="joefile")
    validator = PydanticValidator(dict, drain=["bobfile"])

    result = asyncio.run(validator.parse({"bobfile": bob, "joefile": joe}))

    assert result["bobfile"].text() == "hi bob"
    assert result["joefile"] is joe
    assert bob.consumed and not joe.consumed
