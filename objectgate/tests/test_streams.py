"""
Unit Tests: Response Body Streams

Tests:
    - Shape probe order and per-shape output
    - Empty chunk skipping and chunk type validation
    - Terminal errors raised exactly once
    - Backpressure and release on aclose()
"""

import asyncio
import io
import logging

import pytest

from objectgate.core.errors import BackendError, ErrorCode
from objectgate.objects.streams import ByteStream, adapt_body, release_source
from objectgate.storage.memory_backend import MemoryChunkIterator, MemoryReader


async def _agen(*chunks, error=None):
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk
    if error is not None:
        raise error


async def _collect(stream):
    return [chunk async for chunk in stream]


class _Releasable:
    """Reader exposing every release hook."""

    def __init__(self):
        self.calls = []

    async def aclose(self):
        self.calls.append("aclose")

    def close(self):
        self.calls.append("close")

    def release_conn(self):
        self.calls.append("release_conn")


class TestShapeProbe:
    """Tests for adapt_body shape selection."""

    def test_native_stream_passes_through(self):
        stream = ByteStream([b"abc"])
        assert adapt_body(stream) is stream

    def test_async_iterable_preferred(self):
        stream = adapt_body(MemoryChunkIterator(b"abc", 2))
        assert stream.kind == "async_iterable"

    def test_pull_reader(self):
        stream = adapt_body(MemoryReader(b"abc"))
        assert stream.kind == "pull_reader"

    def test_sync_shapes_are_buffered(self, caplog):
        with caplog.at_level(logging.WARNING, logger="objectgate.objects.streams"):
            stream = adapt_body(b"abc")
        assert stream.kind == "buffered"
        assert any("Buffering" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("body", [None, "text", 42])
    def test_unrecognized_body(self, body):
        with pytest.raises(BackendError):
            adapt_body(body)

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            adapt_body(b"x", chunk_size=0)
        with pytest.raises(ValueError):
            adapt_body(b"x", high_water=0)


class TestStreamContent:
    """Tests for emitted bytes."""

    @pytest.mark.asyncio
    async def test_async_iterable_order_and_empty_chunks(self):
        stream = adapt_body(_agen(b"ab", b"", bytearray(b"cd"), memoryview(b"ef")))
        chunks = await _collect(stream)
        assert chunks == [b"ab", b"cd", b"ef"]
        assert all(isinstance(c, bytes) for c in chunks)

    @pytest.mark.asyncio
    async def test_pull_reader_chunk_size(self):
        reader = MemoryReader(b"0123456789")
        stream = adapt_body(reader, chunk_size=3)
        assert await _collect(stream) == [b"012", b"345", b"678", b"9"]
        assert reader.closed

    @pytest.mark.asyncio
    async def test_buffered_file_like(self):
        source = io.BytesIO(b"hello world")
        stream = adapt_body(source)
        assert await stream.read_all() == b"hello world"
        assert source.closed

    @pytest.mark.asyncio
    async def test_buffered_sync_iterable(self):
        stream = adapt_body([b"a", b"", bytearray(b"b"), memoryview(b"c")])
        assert await stream.read_all() == b"abc"

    @pytest.mark.asyncio
    async def test_empty_body(self):
        stream = adapt_body(MemoryReader(b""))
        assert await _collect(stream) == []


class TestTerminalErrors:
    """Tests for failure delivery."""

    @pytest.mark.asyncio
    async def test_error_raised_once(self):
        cause = OSError("connection reset")
        stream = adapt_body(_agen(b"a", error=cause))

        assert await stream.__anext__() == b"a"
        with pytest.raises(BackendError) as exc_info:
            await stream.__anext__()
        assert exc_info.value.code == ErrorCode.BACKEND_STREAM_FAILED
        assert exc_info.value.__cause__ is cause

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert stream.done

    @pytest.mark.asyncio
    async def test_invalid_chunk_type_is_terminal(self):
        stream = adapt_body(_agen(b"a", "not bytes", b"b"))
        assert await stream.__anext__() == b"a"
        with pytest.raises(BackendError):
            await stream.__anext__()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_reader_released_after_error(self):
        class _FailingReader(_Releasable):
            async def read(self, n):
                raise OSError("boom")

        reader = _FailingReader()
        stream = adapt_body(reader)
        with pytest.raises(BackendError):
            await stream.__anext__()
        assert "close" in reader.calls

    @pytest.mark.asyncio
    async def test_buffered_error(self):
        class _BrokenFile:
            def read(self):
                raise OSError("disk gone")

        stream = adapt_body(_BrokenFile())
        with pytest.raises(BackendError):
            await stream.__anext__()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()


class TestBackpressureAndClose:
    """Tests for bounded buffering and release."""

    @pytest.mark.asyncio
    async def test_producer_bounded_by_high_water(self):
        produced = []

        async def source():
            for i in range(100):
                produced.append(i)
                yield b"x"

        stream = adapt_body(source(), high_water=2)
        await stream.__anext__()
        await asyncio.sleep(0.05)

        # one consumed, two queued, one waiting on the full queue
        assert len(produced) <= 4
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_aclose_releases_reader(self):
        reader = MemoryReader(b"x" * 100)
        stream = adapt_body(reader, chunk_size=1, high_water=1)
        await stream.__anext__()
        await stream.aclose()

        assert reader.closed
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_aclose_before_first_read(self):
        source = MemoryChunkIterator(b"abc", 1)
        stream = adapt_body(source)
        await stream.aclose()
        assert source.closed

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        source = MemoryChunkIterator(b"abcdef", 1)
        async with adapt_body(source) as stream:
            assert await stream.__anext__() == b"a"
        assert source.closed

    @pytest.mark.asyncio
    async def test_release_source_calls_every_hook(self):
        source = _Releasable()
        await release_source(source)
        assert source.calls == ["aclose", "close", "release_conn"]

    @pytest.mark.asyncio
    async def test_release_source_ignores_failures(self):
        class _Bad:
            def close(self):
                raise RuntimeError("already closed")

        await release_source(_Bad())
