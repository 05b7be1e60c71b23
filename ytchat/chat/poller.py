"""
Chat poller: resolves a stream and repeatedly fetches pages of chat messages.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from ytchat.chat.exceptions import AlreadyInProgressError, YoutubeChatError
from ytchat.chat.http import YoutubeApi, extract_video_id
from ytchat.chat.models import (
    DEFAULT_POLL_INTERVAL_MS,
    ChatMessage,
    PollState,
    StreamInfo,
    parse_message_page,
)
from ytchat.chat.reconnect import RetryPolicy

logger = logging.getLogger(__name__)

MessagesCallback = Callable[[List[ChatMessage]], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


class PollerState(str, Enum):
    """Poller lifecycle states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    POLLING = "polling"
    STOPPED = "stopped"


class ChatPoller:
    """
    Polls the liveChat/messages endpoint of a single broadcast.

    Poll cycles run one after another on a single task, so the page token
    and polling interval are never updated concurrently. Each cycle waits
    for the interval the API asked for before issuing the next request.
    """

    def __init__(
        self,
        api: YoutubeApi,
        on_messages: MessagesCallback,
        on_error: ErrorCallback,
        max_backoff: float = 60.0,
        default_poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        min_retry_delay: float = 1.0,
    ):
        """
        Initialize chat poller.

        Args:
            api: API wrapper used for all requests
            on_messages: Awaited with each non-empty batch of messages
            on_error: Awaited with failures of individual poll cycles
            max_backoff: Maximum delay between retries of failed polls (seconds)
            default_poll_interval_ms: Interval used until the API sends one
            min_retry_delay: Minimum delay before retrying a failed poll (seconds)
        """
        self._api = api
        self._on_messages = on_messages
        self._on_error = on_error
        self._retry_policy = RetryPolicy(min_backoff=min_retry_delay, max_backoff=max_backoff)
        self._default_poll_interval_ms = default_poll_interval_ms

        self._state = PollerState.IDLE
        self._stream_info: Optional[StreamInfo] = None
        self._poll_state: Optional[PollState] = None
        self._task: Optional[asyncio.Task] = None

    async def connect(self, stream_url: str) -> StreamInfo:
        """
        Resolve the stream and start polling its chat.

        Args:
            stream_url: URL of the live stream (``...watch?v=<id>``)

        Returns:
            Title and live chat ID of the stream

        Raises:
            MalformedUrlError: If the URL has no video ID
            StreamNotFoundError: If the video doesn't exist or isn't live
            ApiRequestError: If the lookup request fails
            AlreadyInProgressError: If already connecting or polling
        """
        if self._state in (PollerState.CONNECTING, PollerState.POLLING):
            raise AlreadyInProgressError(f"Poller is already {self._state.value}")

        previous_state = self._state
        self._state = PollerState.CONNECTING
        try:
            video_id = extract_video_id(stream_url)
            stream_info = await self._api.get_stream_info(video_id)
        except BaseException:
            if self._state is PollerState.CONNECTING:
                self._state = previous_state
            raise

        if self._state is not PollerState.CONNECTING:
            # stop() was called while resolving
            logger.info("Poller stopped before polling started")
            return stream_info

        self._stream_info = stream_info
        self._poll_state = PollState(
            live_chat_id=stream_info.live_chat_id,
            poll_interval_ms=self._default_poll_interval_ms,
        )
        self._retry_policy.reset()
        self._state = PollerState.POLLING
        self._task = asyncio.create_task(self._run())

        logger.info(f"Polling chat of {stream_info.title!r} ({stream_info.live_chat_id})")
        return stream_info

    async def _run(self) -> None:
        """Run poll cycles until stopped."""
        while self._state is PollerState.POLLING:
            try:
                delay = await self.poll_once()
            except Exception as e:
                # on_messages or on_error raised
                logger.error(f"Poll cycle failed: {e}", exc_info=True)
                delay = self._retry_policy.next_delay(self._poll_state.poll_interval_ms / 1000)
            logger.debug(f"Next poll in {delay:.2f}s")
            await asyncio.sleep(delay)

    async def poll_once(self) -> float:
        """
        Run a single poll cycle.

        Failures are reported through ``on_error`` and leave the page token
        and interval untouched.

        Returns:
            Seconds to wait before the next cycle
        """
        poll_state = self._poll_state
        if poll_state is None:
            raise YoutubeChatError("Poller is not connected")

        interval = poll_state.poll_interval_ms / 1000
        try:
            data = await self._api.get_chat_messages(
                poll_state.live_chat_id,
                poll_state.next_page_token,
            )
            page = parse_message_page(data)

        except YoutubeChatError as e:
            logger.warning(f"Poll failed: {e}")
            await self._on_error(e)
            return self._retry_policy.next_delay(interval)

        except Exception as e:
            logger.error(f"Unexpected error while polling: {e}", exc_info=True)
            await self._on_error(e)
            return self._retry_policy.next_delay(interval)

        if page.messages:
            logger.debug(f"Received {len(page.messages)} messages")
            await self._on_messages(page.messages)

        poll_state.next_page_token = page.next_page_token
        poll_state.poll_interval_ms = page.poll_interval_ms
        self._retry_policy.reset()
        return page.poll_interval_ms / 1000

    async def stop(self) -> None:
        """Stop polling, cancelling any pending request or timer."""
        if self._state is PollerState.IDLE:
            return

        logger.info("Stopping chat poller...")
        self._state = PollerState.STOPPED
        self._stream_info = None

        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        if task is asyncio.current_task():
            # Called from a message handler running on the poll task
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def state(self) -> PollerState:
        """Get the current poller state."""
        return self._state

    @property
    def stream_info(self) -> Optional[StreamInfo]:
        """Get the stream being polled."""
        return self._stream_info

    @property
    def poll_state(self) -> Optional[PollState]:
        """Get the current pagination state."""
        return self._poll_state

    @property
    def is_polling(self) -> bool:
        """Check if currently polling."""
        return self._state is PollerState.POLLING
