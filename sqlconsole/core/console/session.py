import asyncio
from collections import deque
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional, Protocol, Union

from pydantic import ValidationError

from sqlconsole.core.config import Settings
from sqlconsole.core.console.executor import QueryExecutor
from sqlconsole.core.schemas import QueryRequest, QueryResponse

Frame = Union[str, bytes]


# -----------------------------------------------------------------------------
# SESSION LOOP
# Purpose: turn one persistent channel into a strict sequence of
# request -> response exchanges. Ends on the first transport fault.
# -----------------------------------------------------------------------------


class TransportError(Exception):
    """The channel itself failed. Fatal to the session; nothing more is sent."""


class ChannelClosed(TransportError):
    def __init__(self, message: str = "channel closed", code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class RequestDecodeError(TransportError):
    """An inbound frame could not be decoded into a request."""


class Channel(Protocol):
    async def receive(self) -> Frame:  # pragma: no cover - interface
        """Next inbound frame. Raises ChannelClosed once the peer is gone."""
        ...

    async def send(self, text: str) -> None:  # pragma: no cover - interface
        """Deliver one frame. Raises ChannelClosed on failure."""
        ...


class SessionState(str, Enum):
    AWAITING_REQUEST = "awaiting-request"
    PROCESSING = "processing"
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionConfig:
    """Per-session settings, handed to every session explicitly."""

    stats_command: str = "stats"
    max_message_size: int = 16 * 1024 * 1024
    decode_error_close_code: int = 1007

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            stats_command=settings.STATS_COMMAND,
            max_message_size=settings.WS_MAX_MESSAGE_SIZE,
        )


class SessionLoop:
    """
    Owns one channel for its whole life.

    Requests are handled one at a time: a response is fully sent before the
    next request is read. While a query runs the loop keeps one receive
    outstanding, so a peer that goes away cancels the query. Frames that
    arrive early are held in order and become the next requests.
    """

    def __init__(self, channel: Channel, executor: QueryExecutor, config: SessionConfig):
        self.channel = channel
        self.executor = executor
        self.config = config
        self.state = SessionState.AWAITING_REQUEST
        self.exchanges = 0
        self._pending: Optional[asyncio.Future] = None
        self._early: Deque[Frame] = deque()

    async def run(self) -> None:
        """
        Serve requests until the channel fails.

        Never returns normally.

        Raises:
            ChannelClosed: the peer disconnected or a send failed.
            RequestDecodeError: a frame was malformed; the caller should close the channel.
        """
        try:
            while True:
                self.state = SessionState.AWAITING_REQUEST
                frame = await self._next_frame()
                request = self.decode(frame)

                self.state = SessionState.PROCESSING
                response = await self._process(request.query)
                await self.channel.send(response.to_wire())
                self.exchanges += 1
        finally:
            self.state = SessionState.CLOSED
            self._early.clear()
            await self._drop_pending()

    def decode(self, frame: Frame) -> QueryRequest:
        size = len(frame.encode("utf-8")) if isinstance(frame, str) else len(frame)
        if size > self.config.max_message_size:
            raise RequestDecodeError(
                f"frame of {size} bytes exceeds limit of {self.config.max_message_size}"
            )
        try:
            return QueryRequest.model_validate_json(frame)
        except ValidationError as error:
            reason = error.errors()[0]["msg"] if error.errors() else str(error)
            raise RequestDecodeError(f"malformed request frame: {reason}") from error

    async def _next_frame(self) -> Frame:
        if self._early:
            return self._early.popleft()
        if self._pending is not None:
            pending, self._pending = self._pending, None
            return await pending
        return await self.channel.receive()

    async def _process(self, query: str) -> QueryResponse:
        work = asyncio.ensure_future(self.executor.execute(query))
        try:
            # Exactly one receive stays outstanding until the work is done
            while not work.done():
                if self._pending is None:
                    self._pending = asyncio.ensure_future(self.channel.receive())
                await asyncio.wait({work, self._pending}, return_when=asyncio.FIRST_COMPLETED)

                if not self._pending.done():
                    continue
                if self._pending.exception() is not None:
                    if work.done():
                        # Left in place: the next read raises it after this response
                        break
                    # Peer is gone: surface the channel failure, the query gets cancelled below
                    await self._pending
                self._early.append(self._pending.result())
                self._pending = None
            return await work
        finally:
            if not work.done():
                work.cancel()
                with suppress(asyncio.CancelledError):
                    await work

    async def _drop_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return
        if pending.done():
            if not pending.cancelled():
                # Mark retrieved; the session is over either way
                pending.exception()
            return
        pending.cancel()
        with suppress(asyncio.CancelledError, TransportError):
            await pending
