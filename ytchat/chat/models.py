"""
Message models for YouTube live chat.
"""

from datetime import datetime
from typing import Optional, Any, Dict, List
from dataclasses import dataclass
import logging

from ytchat.chat.exceptions import ItemParseError, ResponseParseError

logger = logging.getLogger(__name__)

TEXT_MESSAGE_EVENT = "textMessageEvent"
DEFAULT_POLL_INTERVAL_MS = 5000


@dataclass(frozen=True)
class StreamInfo:
    """Title and live chat ID of a broadcast."""
    title: str
    live_chat_id: str


@dataclass
class PollState:
    """Pagination state of a chat poller."""
    live_chat_id: str
    next_page_token: Optional[str] = None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS


@dataclass(frozen=True)
class ChatMessage:
    """Represents a chat message."""
    display_name: str
    timestamp: datetime
    content: str

    @classmethod
    def from_raw(cls, data: Dict[str, Any]) -> "ChatMessage":
        """
        Parse ChatMessage from a raw ``liveChatMessages`` item.

        Args:
            data: Item of kind textMessageEvent

        Returns:
            Parsed ChatMessage instance

        Raises:
            ItemParseError: If a mandatory field is missing or invalid
        """
        snippet = _get_object(data, "snippet")
        author = _get_object(data, "authorDetails")

        display_name = _get_string(author, "displayName")
        if display_name is None:
            raise ItemParseError("Missing commenter display name")

        published_at = _get_string(snippet, "publishedAt")
        if published_at is None:
            raise ItemParseError("Missing comment timestamp")
        try:
            timestamp = parse_timestamp(published_at)
        except ValueError as e:
            raise ItemParseError(f"Invalid comment timestamp {published_at!r}: {e}")

        content = _get_string(snippet, "displayMessage")
        if content is None:
            raise ItemParseError("Missing message content")

        return cls(display_name=display_name, timestamp=timestamp, content=content)


@dataclass
class MessagePage:
    """One validated page of the liveChat/messages endpoint."""
    messages: List[ChatMessage]
    next_page_token: str
    poll_interval_ms: int


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as sent by the YouTube API."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_chat_message(item: Dict[str, Any]) -> Optional[ChatMessage]:
    """
    Parse one raw chat item.

    Only plain text messages are supported; every other kind (super chats,
    membership events, deletions, ...) returns None.

    Raises:
        ItemParseError: If the item has no kind or a text message is malformed
    """
    if not isinstance(item, dict):
        raise ItemParseError(f"Unexpected item type: {type(item).__name__}")

    message_type = _get_string(_get_object(item, "snippet"), "type")
    if message_type is None:
        raise ItemParseError("Missing message type")

    if message_type != TEXT_MESSAGE_EVENT:
        logger.info(f"Unsupported message type: {message_type}")
        return None

    return ChatMessage.from_raw(item)


def parse_chat_messages(items: List[Any]) -> List[ChatMessage]:
    """Parse a list of raw items, dropping those that fail."""
    messages = []
    for item in items:
        try:
            message = parse_chat_message(item)
        except ItemParseError as e:
            logger.warning(f"Skipping malformed chat item: {e}")
            continue
        if message is not None:
            messages.append(message)
    return messages


def parse_message_page(data: Any) -> MessagePage:
    """
    Validate a liveChat/messages response and parse its items.

    Raises:
        ResponseParseError: If the polling interval or page token is
            missing or invalid, or ``items`` is not a list
    """
    if not isinstance(data, dict):
        raise ResponseParseError("Unexpected response body")

    poll_interval = data.get("pollingIntervalMillis")
    # bool is an int subclass
    if (
        isinstance(poll_interval, bool)
        or not isinstance(poll_interval, int)
        or poll_interval < 0
    ):
        raise ResponseParseError(f"Invalid polling interval: {poll_interval!r}")

    next_page_token = data.get("nextPageToken")
    if not isinstance(next_page_token, str) or not next_page_token:
        raise ResponseParseError("Missing nextPageToken")

    items = data.get("items", [])
    if not isinstance(items, list):
        raise ResponseParseError("Missing chat messages")

    return MessagePage(
        messages=parse_chat_messages(items),
        next_page_token=next_page_token,
        poll_interval_ms=poll_interval,
    )


def _get_object(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _get_string(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None
