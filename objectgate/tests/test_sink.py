"""
Unit Tests: Streaming Response Sink

Tests:
    - Header/body ordering rules
    - Bounded buffering and consumer disconnect
    - Abort and JSON error responses
"""

import asyncio

import pytest

from objectgate.objects.sink import ResponseSink, StreamingResponse


class TestStreamingResponse:
    @pytest.mark.asyncio
    async def test_protocol(self):
        assert isinstance(StreamingResponse(), ResponseSink)

    @pytest.mark.asyncio
    async def test_body_round_trip(self):
        sink = StreamingResponse()
        await sink.send_headers(200, {"Content-Type": "text/plain"})
        assert await sink.write(b"ab")
        assert await sink.write(b"cd")
        await sink.end()

        assert sink.headers == {"content-type": "text/plain"}
        assert await sink.read_body() == b"abcd"
        assert sink.ended and sink.closed

    @pytest.mark.asyncio
    async def test_ordering_rules(self):
        sink = StreamingResponse()
        with pytest.raises(RuntimeError):
            await sink.write(b"x")
        await sink.send_headers(200, {})
        with pytest.raises(RuntimeError):
            await sink.send_headers(500, {})

    @pytest.mark.asyncio
    async def test_write_waits_for_consumer(self):
        sink = StreamingResponse(high_water=1)
        await sink.send_headers(200, {})
        assert await sink.write(b"1")

        pending = asyncio.ensure_future(sink.write(b"2"))
        await asyncio.sleep(0.01)
        assert not pending.done()

        body = sink.body()
        assert await body.__anext__() == b"1"
        assert await asyncio.wait_for(pending, timeout=1)
        await body.aclose()

    @pytest.mark.asyncio
    async def test_disconnect_releases_blocked_writer(self):
        sink = StreamingResponse(high_water=1)
        await sink.send_headers(200, {})
        await sink.write(b"1")

        pending = asyncio.ensure_future(sink.write(b"2"))
        await asyncio.sleep(0.01)
        await sink.close()

        assert await asyncio.wait_for(pending, timeout=1) is False
        assert await sink.write(b"3") is False
        assert sink.disconnected

    @pytest.mark.asyncio
    async def test_abort_discards_buffer(self):
        sink = StreamingResponse()
        await sink.send_headers(200, {})
        await sink.write(b"partial")
        await sink.abort()

        assert sink.aborted and not sink.ended
        assert await sink.read_body() == b""
        await sink.end()
        assert not sink.ended

    @pytest.mark.asyncio
    async def test_send_error(self):
        sink = StreamingResponse()
        await sink.send_error(404, {"error": "Object not found"})

        assert sink.status == 404
        assert sink.headers["content-type"] == "application/json"
        assert sink.json() == {"error": "Object not found"}

    def test_invalid_high_water(self):
        with pytest.raises(ValueError):
            StreamingResponse(high_water=0)
