"""
Response Body Streams
=====================

Normalizes the body shapes backend clients return into one contract,
`ByteStream`: an async iterator of non-empty `bytes` chunks with
`aclose()` and async-context-manager support.

Shape probe, in preference order:

1. native          already a ByteStream; returned unchanged
2. async-iterable  has `__aiter__`; bridged through a bounded queue
3. pull-reader     coroutine `read(n)` (aiobotocore StreamingBody,
                   aiohttp StreamReader); read loop through the same bridge
4. generic pipe    sync file-like, sync iterable of chunks, or bytes-like;
                   fully buffered before emission

Stream Guarantees:
------------------
- Chunks are emitted in backend order, without duplication; empty chunks
  are skipped
- A read failure is raised once, as BackendError, with the original
  exception chained; the stream is exhausted afterwards
- `aclose()` cancels the producer and closes the backend reader
- The bridge holds at most `high_water` chunks, so a slow consumer
  suspends the producer
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, AsyncIterable, AsyncIterator, Iterable, List, Optional, Union

from objectgate.core import constants as C
from objectgate.core.errors import BackendError

logger = logging.getLogger(__name__)

Chunk = Union[bytes, bytearray, memoryview]

_CHUNK_TYPES = (bytes, bytearray, memoryview)

# Release hooks probed on a backend reader, all of them called when present
_RELEASE_METHODS = ("aclose", "close", "release_conn")


# =============================================================================
# HELPERS
# =============================================================================
def _coerce_chunk(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Unsupported chunk type: {type(chunk).__name__}")


async def release_source(source: Any) -> None:
    """
    Close or release a backend reader.

    Each of aclose/close/release_conn that exists is called; awaitable
    results are awaited. Failures are logged, never raised.
    """
    for name in _RELEASE_METHODS:
        method = getattr(source, name, None)
        if not callable(method):
            continue
        try:
            result = method()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.debug(f"Releasing body via {name}() failed: {e}")


class _End:
    __slots__ = ()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


_END = _End()


# =============================================================================
# BYTE STREAM
# =============================================================================
class ByteStream:
    """
    Canonical async byte stream.

    Usage:
        async with adapt_body(body) as stream:
            async for chunk in stream:
                await sink.write(chunk)
    """

    kind = "native"

    def __init__(self, chunks: Optional[Iterable[Chunk]] = None) -> None:
        self._chunks: List[bytes] = [c for c in (_coerce_chunk(c) for c in chunks or ()) if c]
        self._index = 0
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def __aiter__(self) -> ByteStream:
        return self

    async def __anext__(self) -> bytes:
        if self._done or self._index >= len(self._chunks):
            self._done = True
            raise StopAsyncIteration
        chunk = self._chunks[self._index]
        self._index += 1
        return chunk

    async def aclose(self) -> None:
        self._done = True

    async def __aenter__(self) -> ByteStream:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def read_all(self) -> bytes:
        """Drain the stream into one bytes object."""
        parts = [chunk async for chunk in self]
        return b"".join(parts)


class _BridgedStream(ByteStream):
    """
    Async source drained by a producer task into a bounded queue.

    The producer starts on the first read, so adapting a body never
    touches the backend by itself.
    """

    def __init__(self, source: Any, *, high_water: int) -> None:
        super().__init__()
        self._source = source
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=high_water)
        self._task: Optional[asyncio.Task[None]] = None
        self._released = False

    def _chunks_from_source(self) -> AsyncIterable[Any]:
        raise NotImplementedError

    async def _produce(self) -> None:
        try:
            async for raw in self._chunks_from_source():
                chunk = _coerce_chunk(raw)
                if chunk:
                    await self._queue.put(chunk)
        except Exception as e:
            await self._queue.put(_Failure(e))
            return
        await self._queue.put(_END)

    async def __anext__(self) -> bytes:
        if self._done:
            raise StopAsyncIteration
        if self._task is None:
            self._task = asyncio.ensure_future(self._produce())

        item = await self._queue.get()
        if item is _END:
            self._done = True
            await self._release()
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._done = True
            await self._release()
            raise BackendError.stream_failed(item.error) from item.error
        return item

    async def aclose(self) -> None:
        self._done = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait([self._task])
        await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await release_source(self._source)


class _AsyncIterableStream(_BridgedStream):
    kind = "async_iterable"

    def _chunks_from_source(self) -> AsyncIterable[Any]:
        return self._source


class _PullReaderStream(_BridgedStream):
    kind = "pull_reader"

    def __init__(self, source: Any, *, chunk_size: int, high_water: int) -> None:
        super().__init__(source, high_water=high_water)
        self._chunk_size = chunk_size

    async def _chunks_from_source(self) -> AsyncIterator[Any]:
        while True:
            chunk = await self._source.read(self._chunk_size)
            if not chunk:
                return
            yield chunk


class _BufferedStream(ByteStream):
    """Synchronous source read to completion on the first read."""

    kind = "buffered"

    def __init__(self, source: Any) -> None:
        super().__init__()
        self._source = source
        self._loaded = False

    def _collect(self) -> List[bytes]:
        source = self._source
        if isinstance(source, _CHUNK_TYPES):
            raw: Iterable[Any] = [source]
        elif callable(getattr(source, "read", None)):
            raw = [source.read()]
        else:
            raw = source
        return [c for c in (_coerce_chunk(r) for r in raw) if c]

    async def __anext__(self) -> bytes:
        if self._done:
            raise StopAsyncIteration
        if not self._loaded:
            self._loaded = True
            try:
                self._chunks = self._collect()
            except Exception as e:
                self._done = True
                await release_source(self._source)
                raise BackendError.stream_failed(e) from e
            await release_source(self._source)
        return await super().__anext__()

    async def aclose(self) -> None:
        if not self._loaded:
            self._loaded = True
            await release_source(self._source)
        await super().aclose()


# =============================================================================
# SHAPE PROBE
# =============================================================================
def adapt_body(
    body: Any,
    *,
    chunk_size: int = C.STREAM_CHUNK_SIZE_BYTES,
    high_water: int = C.STREAM_HIGH_WATER_CHUNKS,
) -> ByteStream:
    """
    Wrap a backend response body in a ByteStream.

    Raises:
        ValueError: chunk_size or high_water is not positive.
        BackendError: The body has none of the recognized shapes.
    """
    if chunk_size <= 0 or high_water <= 0:
        raise ValueError("chunk_size and high_water must be > 0")

    if isinstance(body, ByteStream):
        return body
    if hasattr(body, "__aiter__"):
        return _AsyncIterableStream(body, high_water=high_water)
    if inspect.iscoroutinefunction(getattr(body, "read", None)):
        return _PullReaderStream(body, chunk_size=chunk_size, high_water=high_water)

    if body is None or isinstance(body, str) or not (
        isinstance(body, _CHUNK_TYPES)
        or callable(getattr(body, "read", None))
        or hasattr(body, "__iter__")
    ):
        raise BackendError.stream_failed(
            TypeError(f"Unrecognized response body: {type(body).__name__}")
        )

    logger.warning(
        f"Buffering {type(body).__name__} response body in memory; "
        "backend did not return a streaming body"
    )
    return _BufferedStream(body)


__all__ = ["ByteStream", "adapt_body", "release_source"]
