"""
Response sinks for streamed downloads.

`ResponseSink` is the surface the download path writes to: headers once,
then body chunks with backpressure, then end. An error response is only
possible before headers; afterwards the only failure signal is `abort()`.

`StreamingResponse` is the in-process implementation: the producer side
is the sink, the consumer side iterates `body()`. Its buffer is bounded,
so `write` suspends while the consumer is behind. Consumer disconnect is
`close()`; subsequent writes report False.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Dict, Optional, Protocol, runtime_checkable

from objectgate.core import constants as C


@runtime_checkable
class ResponseSink(Protocol):
    """Destination of a streamed download."""

    @property
    def headers_sent(self) -> bool:
        ...

    @property
    def closed(self) -> bool:
        """True once the response ended, was aborted, or the consumer left."""
        ...

    async def send_headers(self, status: int, headers: Dict[str, str]) -> None:
        ...

    async def write(self, chunk: bytes) -> bool:
        """
        Send one body chunk, waiting while the consumer is behind.

        Returns False when the consumer has gone away.
        """
        ...

    async def end(self) -> None:
        ...

    async def send_error(self, status: int, body: Dict[str, Any]) -> None:
        """Send a complete JSON error response. Only valid before headers."""
        ...

    async def abort(self) -> None:
        """Terminate a response whose headers are already sent."""
        ...


class _Eof:
    __slots__ = ()


_EOF = _Eof()


class StreamingResponse:
    """
    Bounded-buffer ResponseSink.

    Example:
        response = StreamingResponse()
        task = asyncio.create_task(service.download(ref, response))
        async for chunk in response.body():
            ...
    """

    def __init__(self, high_water: int = C.SINK_HIGH_WATER_CHUNKS) -> None:
        if high_water <= 0:
            raise ValueError("high_water must be > 0")
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.aborted = False
        self.ended = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=high_water)
        self._headers_sent = False
        self._disconnected = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    @property
    def closed(self) -> bool:
        return self.ended or self.aborted or self._disconnected

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    # -------------------------------------------------------------------------
    # PRODUCER SIDE
    # -------------------------------------------------------------------------

    async def send_headers(self, status: int, headers: Dict[str, str]) -> None:
        if self._headers_sent:
            raise RuntimeError("Headers already sent")
        self.status = status
        self.headers = {k.lower(): v for k, v in headers.items()}
        self._headers_sent = True

    async def write(self, chunk: bytes) -> bool:
        if not self._headers_sent:
            raise RuntimeError("write() before send_headers()")
        if self.closed:
            return False
        await self._queue.put(chunk)
        return not self._disconnected

    async def end(self) -> None:
        if self.closed:
            return
        self.ended = True
        await self._queue.put(_EOF)

    async def send_error(self, status: int, body: Dict[str, Any]) -> None:
        payload = json.dumps(body, default=str).encode()
        await self.send_headers(status, {
            "content-type": "application/json",
            "content-length": str(len(payload)),
        })
        await self.write(payload)
        await self.end()

    async def abort(self) -> None:
        if self.closed:
            return
        self.aborted = True
        self._drain()
        self._queue.put_nowait(_EOF)

    # -------------------------------------------------------------------------
    # CONSUMER SIDE
    # -------------------------------------------------------------------------

    async def body(self) -> AsyncIterator[bytes]:
        """Yield body chunks until the response ends or is aborted."""
        while not self._disconnected:
            item = await self._queue.get()
            if item is _EOF:
                return
            yield item

    async def read_body(self) -> bytes:
        return b"".join([chunk async for chunk in self.body()])

    async def close(self) -> None:
        """Consumer disconnect: pending and future writes are discarded."""
        self._disconnected = True
        self._drain()

    def json(self) -> Any:
        """Drain and decode a fully buffered JSON body."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _EOF:
                items.append(item)
        return json.loads(b"".join(items))

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()


__all__ = ["ResponseSink", "StreamingResponse"]
