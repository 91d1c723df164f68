"""
Response stream interception.

Each intercepted request gets its own StreamInterceptor:

    AWAITING_DATA -> ACCUMULATING -> FINALIZING -> EMITTED

Chunks are decoded incrementally (multi-byte characters may be split across
chunks) and only buffered; nothing is parsed until the transport reports the
end of the body. Then the whole text goes through the pipeline and the
result is written downstream in a single write, followed by close().

Whatever goes wrong while processing, the original bytes are emitted instead.
The response is never dropped or truncated.

InterceptorRegistry routes network events to the right interceptor by
request id and sends the completion notification to the page.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
from enum import Enum
from typing import Optional, Protocol

from coursefilter.config import Settings
from coursefilter.errors import DecodeError, MalformedEnvelope, StoreError
from coursefilter.notify import CompletionNotifier, MessageChannel
from coursefilter.pipeline import CatalogPipeline

logger = logging.getLogger(__name__)


class State(Enum):
    AWAITING_DATA = "awaiting_data"
    ACCUMULATING = "accumulating"
    FINALIZING = "finalizing"
    EMITTED = "emitted"


class ResponseStream(Protocol):
    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class BufferStream:
    """Downstream sink that keeps everything written to it."""

    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ValueError("write to closed stream")
        self.chunks.append(bytes(data))

    def close(self) -> None:
        self.closed = True

    def getvalue(self) -> bytes:
        return b"".join(self.chunks)


def url_matches(pattern: str, url: str) -> bool:
    """Match-pattern style: '*' matches any run of characters, nothing else is special."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, url) is not None


class StreamInterceptor:
    def __init__(self, stream: ResponseStream, pipeline: CatalogPipeline, request_id: str = "") -> None:
        self.stream = stream
        self.pipeline = pipeline
        self.request_id = request_id
        self.state = State.AWAITING_DATA

        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._raw = bytearray()
        self._parts: list[str] = []
        self._decode_failed = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def _decode(self, chunk: bytes, final: bool = False) -> str:
        try:
            return self._decoder.decode(chunk, final=final)
        except UnicodeDecodeError as e:
            raise DecodeError(str(e)) from e

    def on_data(self, chunk: bytes) -> None:
        if self.state in (State.FINALIZING, State.EMITTED):
            logger.warning("Request %s: ignoring data after end of body", self.request_id)
            return
        self.state = State.ACCUMULATING
        self._raw.extend(chunk)

        if self._decode_failed:
            return
        try:
            self._parts.append(self._decode(chunk))
        except DecodeError as e:
            # keep collecting bytes, they will be passed through as they came
            self._decode_failed = True
            logger.warning("Request %s: body is not valid UTF-8, passing through: %s", self.request_id, e)
        else:
            logger.debug("Request %s: received %d bytes", self.request_id, len(chunk))

    def _process(self) -> Optional[bytes]:
        """Rewritten body, or None if the original bytes should go out."""
        if self._decode_failed:
            return None
        try:
            self._parts.append(self._decode(b"", final=True))
        except DecodeError as e:
            self._decode_failed = True
            logger.warning("Request %s: body ends inside a character, passing through: %s", self.request_id, e)
            return None

        original = self.text
        result = self.pipeline.process(original)
        if result is original:
            return None
        return result.encode("utf-8")

    def on_stop(self) -> bool:
        """
        Finish the body and emit it downstream.

        Returns True if the pipeline ran to completion (the body may still be
        unchanged, e.g. when the response carried no courses).
        """
        if self.state is State.EMITTED:
            return False
        self.state = State.FINALIZING

        body: Optional[bytes] = None
        ok = False
        try:
            body = self._process()
            ok = not self._decode_failed
        except MalformedEnvelope as e:
            logger.warning("Request %s: %s, passing through", self.request_id, e)
        except Exception:
            logger.exception("Request %s: filtering failed, passing through", self.request_id)
        finally:
            self.stream.write(body if body is not None else bytes(self._raw))
            self.stream.close()
            self.state = State.EMITTED

        try:
            self.pipeline.mark_loaded()
        except StoreError as e:
            logger.warning("Request %s: could not set ready flag: %s", self.request_id, e)
        return ok


class InterceptorRegistry:
    """
    Network-facing side: one interceptor per in-flight catalog request.

    Handlers are coroutines so they can be wired straight into an event loop;
    chunks of one request must be delivered in arrival order.
    """

    def __init__(
        self,
        pipeline: CatalogPipeline,
        catalog_url_pattern: str,
        shell_url_pattern: str = "",
        notifier: Optional[CompletionNotifier] = None,
    ) -> None:
        self.pipeline = pipeline
        self.catalog_url_pattern = catalog_url_pattern
        self.shell_url_pattern = shell_url_pattern
        self.notifier = notifier
        self.active: dict[str, StreamInterceptor] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        channel: Optional[MessageChannel] = None,
        pipeline: Optional[CatalogPipeline] = None,
    ) -> "InterceptorRegistry":
        """Registry wired with the configured URL patterns and notification retry policy."""
        notifier = CompletionNotifier(channel, settings.retry_policy()) if channel is not None else None
        return cls(
            pipeline=pipeline or CatalogPipeline.from_settings(settings),
            catalog_url_pattern=settings.catalog_url_pattern,
            shell_url_pattern=settings.shell_url_pattern,
            notifier=notifier,
        )

    def _notify(self) -> Optional["asyncio.Task[bool]"]:
        if self.notifier is None:
            return None
        return self.notifier.schedule()

    async def on_before_request(self, request_id: str, url: str, stream: ResponseStream) -> bool:
        """Start intercepting if `url` is the catalog fetch. Returns True if it is."""
        if not url_matches(self.catalog_url_pattern, url):
            return False
        if request_id in self.active:
            logger.warning("Request %s is already being intercepted", request_id)
            return True
        self.active[request_id] = StreamInterceptor(stream, self.pipeline, request_id)
        logger.debug("Intercepting request %s (%s)", request_id, url)
        return True

    async def on_data(self, request_id: str, chunk: bytes) -> None:
        interceptor = self.active.get(request_id)
        if interceptor is None:
            logger.debug("Data for unknown request %s", request_id)
            return
        interceptor.on_data(chunk)

    async def on_stop(self, request_id: str) -> Optional["asyncio.Task[bool]"]:
        interceptor = self.active.pop(request_id, None)
        if interceptor is None:
            logger.debug("End of body for unknown request %s", request_id)
            return None
        interceptor.on_stop()
        return self._notify()

    async def on_completed(self, url: str) -> Optional["asyncio.Task[bool]"]:
        """The page shell finished loading; tell the page the catalog is ready."""
        if not self.shell_url_pattern or not url_matches(self.shell_url_pattern, url):
            return None
        return self._notify()
