"""
Streaming chat session controller.

A :class:`StreamSession` drives one request/response lifecycle:

    IDLE -> OPENING -> ACTIVE -> COMPLETED | FAILED | CANCELLED | CLOSED

It opens a channel through a transport, feeds every chunk to a
:class:`FrameDecoder`, and turns frames into callbacks. The first terminal
transition wins: once a session has completed, failed, been cancelled or
been closed, later frames and callbacks are dropped. Exactly one of
``on_complete`` / ``on_error`` fires per session, except after
:meth:`StreamSession.cancel`, which fires neither.

Example:
    session = StreamSession.create(
        config,
        on_token=lambda token, text: print(token, end="", flush=True),
        on_complete=save_message,
        on_error=lambda message: print("error:", message),
    )
    await session.run(request)
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any

from canvas_chat.config import CanvasConfig
from canvas_chat.errors import (
    SessionStateError,
    StreamError,
    StreamTerminatedByServer,
    StreamTimeoutError,
)
from canvas_chat.logging import get_logger
from canvas_chat.streaming.decoder import Frame, FrameDecoder
from canvas_chat.streaming.models import (
    CONVERSATION_ID,
    ERROR,
    STREAM_END,
    STREAM_START,
    TOKEN_EVENTS,
    StreamingChatRequest,
    StreamResult,
)
from canvas_chat.transports.base import Channel, TransportBase, TransportConfig

logger = get_logger("streaming.session")

# Callbacks may be plain functions or coroutine functions.
Callback = Callable[..., Any]


class SessionState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CLOSED = "closed"  # channel ended without a terminal frame

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED, SessionState.CLOSED}
)


async def _call(callback: Callback | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StreamSession:
    """Runs a single streaming chat exchange."""

    def __init__(
        self,
        transport: TransportBase,
        *,
        on_token: Callback | None = None,
        on_conversation_id: Callback | None = None,
        on_stream_start: Callback | None = None,
        on_complete: Callback | None = None,
        on_error: Callback | None = None,
        on_close: Callback | None = None,
        idle_timeout: float | None = None,
    ) -> None:
        self.transport = transport
        self.on_token = on_token
        self.on_conversation_id = on_conversation_id
        self.on_stream_start = on_stream_start
        self.on_complete = on_complete
        self.on_error = on_error
        self.on_close = on_close
        self.idle_timeout = idle_timeout

        self.state = SessionState.IDLE
        self.text = ""
        self.conversation_id: str | None = None
        self.message_id: str | None = None
        self.error: str | None = None

        self._decoder = FrameDecoder()
        self._cancel_event = asyncio.Event()
        self._terminal_claimed = False
        self._request: StreamingChatRequest | None = None
        self._task: asyncio.Task[SessionState] | None = None
        self._channel: Channel | None = None
        self._chunks: AsyncIterator[bytes] | None = None
        self._owns_transport = False

    @classmethod
    def create(cls, config: CanvasConfig, **callbacks: Any) -> StreamSession:
        """Build a session with its own SSE transport from ``config``."""
        from canvas_chat.transports.sse import SSETransport

        transport = SSETransport(TransportConfig.from_canvas_config(config))
        callbacks.setdefault("idle_timeout", config.stream_idle_timeout)
        session = cls(transport, **callbacks)
        session._owns_transport = True
        return session

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """True from start until the session reaches a terminal state.

        Stays True while an async ``on_complete`` is still running.
        """
        return self.state in (SessionState.OPENING, SessionState.ACTIVE)

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def result(self) -> StreamResult:
        return StreamResult(
            text=self.text,
            conversation_id=self.conversation_id,
            message_id=self.message_id,
            error=self.error,
        )

    def _claim_terminal(self) -> bool:
        """Take the terminal latch. Only the first caller gets True."""
        if self._terminal_claimed:
            return False
        self._terminal_claimed = True
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, request: StreamingChatRequest) -> asyncio.Task[SessionState]:
        """Schedule :meth:`run` on the running loop and return its task."""
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Session already {self.state.value}")
        self._task = asyncio.get_running_loop().create_task(self.run(request))
        return self._task

    async def run(self, request: StreamingChatRequest) -> SessionState:
        """Run the whole exchange and return the final state."""
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Session already {self.state.value}")

        self._request = request
        self._task = self._task or asyncio.current_task()
        self.state = SessionState.OPENING
        logger.info("Opening stream for chat node %s", request.chat_node_id)

        try:
            try:
                self._channel = await self.transport.open(request.to_payload())
            except StreamError as exc:
                await self._fail(str(exc))
                return self.state

            if self._terminal_claimed:
                return self.state
            self.state = SessionState.ACTIVE
            await self._read_loop()
        except asyncio.CancelledError:
            if not self._cancel_event.is_set():
                raise
            task = asyncio.current_task()
            if task is not None and hasattr(task, "uncancel"):
                task.uncancel()
            logger.info("Stream for chat node %s cancelled", request.chat_node_id)
        finally:
            await self._release()
        return self.state

    def cancel(self) -> bool:
        """
        Abort an opening or active session.

        Cancellation is not an error: neither ``on_error`` nor ``on_complete``
        fires. Returns False (and does nothing) when the session is idle or
        already finished.
        """
        if self.state not in (SessionState.OPENING, SessionState.ACTIVE):
            return False
        if not self._claim_terminal():
            return False

        self._cancel_event.set()
        self.state = SessionState.CANCELLED

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # From inside a callback the read loop notices the token itself.
        if self._task is not None and self._task is not current and not self._task.done():
            self._task.cancel()
        return True

    async def _release(self) -> None:
        if self._chunks is not None:
            aclose = getattr(self._chunks, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as exc:
                    logger.debug("Error closing chunk iterator: %s", exc)
            self._chunks = None
        if self._channel is not None:
            try:
                await self._channel.aclose()
            except Exception as exc:
                logger.debug("Error closing channel: %s", exc)
            self._channel = None
        if self._owns_transport:
            await self.transport.close()

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _next_chunk(self) -> bytes:
        assert self._chunks is not None
        if self.idle_timeout is None:
            return await self._chunks.__anext__()
        try:
            return await asyncio.wait_for(self._chunks.__anext__(), self.idle_timeout)
        except asyncio.TimeoutError:
            raise StreamTimeoutError(
                f"No data received for {self.idle_timeout:g} seconds"
            ) from None

    async def _read_loop(self) -> None:
        assert self._channel is not None
        self._chunks = self._channel.chunks()

        while not self._terminal_claimed:
            try:
                chunk = await self._next_chunk()
            except StopAsyncIteration:
                await self._dispatch_frames(self._decoder.flush())
                break
            except StreamError as exc:
                await self._fail(str(exc))
                return
            except Exception as exc:
                logger.exception("Unexpected transport failure")
                await self._fail(str(exc) or type(exc).__name__)
                return

            await self._dispatch_frames(self._decoder.feed(chunk))

        if self._cancel_event.is_set():
            return
        if self._claim_terminal():
            self.state = SessionState.CLOSED
            logger.info("Stream closed without a terminal event")
        await self._notify(self.on_close)

    async def _dispatch_frames(self, frames: list[Frame]) -> None:
        for frame in frames:
            if self._terminal_claimed:
                break
            await self._dispatch(frame)

    async def _dispatch(self, frame: Frame) -> None:
        try:
            data = frame.json()
        except ValueError:
            logger.error("Malformed %s payload: %r", frame.event_type, frame.payload)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object %s payload: %r", frame.event_type, data)
            return

        event_type = frame.event_type
        if event_type in TOKEN_EVENTS:
            token = data.get("token")
            if token is None:
                return
            self.text += str(token)
            await self._notify(self.on_token, str(token), self.text)
        elif event_type == CONVERSATION_ID:
            self.conversation_id = data.get("conversation_id")
            logger.debug("Conversation id %s", self.conversation_id)
            await self._notify(self.on_conversation_id, self.conversation_id)
        elif event_type == STREAM_START:
            logger.debug("Stream started")
            await self._notify(self.on_stream_start, data)
        elif event_type == STREAM_END:
            await self._complete(data)
        elif event_type == ERROR:
            error = StreamTerminatedByServer(data.get("error") or "Unknown streaming error")
            await self._fail(str(error))
        else:
            logger.warning("Unknown event type %r: %r", event_type, data)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    async def _notify(self, callback: Callback | None, *args: Any) -> None:
        """Run an informational callback; its failures never end the session."""
        try:
            await _call(callback, *args)
        except Exception:
            logger.exception("Stream callback %s failed", getattr(callback, "__name__", callback))

    async def _complete(self, data: dict[str, Any]) -> None:
        if not self._claim_terminal():
            return
        self.message_id = data.get("message_id")
        conversation_id = self.conversation_id or (
            self._request.conversation_id if self._request else None
        )
        self.conversation_id = conversation_id

        # Observers must not see "inactive" before the completion work is done.
        try:
            await _call(self.on_complete, self.text, conversation_id, self.message_id)
        except Exception:
            logger.exception("Completion callback failed")
        self.state = SessionState.COMPLETED
        logger.info("Stream completed (message %s, %d chars)", self.message_id, len(self.text))

    async def _fail(self, message: str) -> None:
        if not self._claim_terminal():
            return
        self.error = message
        self.state = SessionState.FAILED
        logger.warning("Stream failed: %s", message)
        await self._notify(self.on_error, message)
