"""
YouTube live chat polling: stream resolution, message parsing and the poll loop.
"""

from ytchat.chat.poller import ChatPoller, PollerState
from ytchat.chat.models import (
    ChatMessage,
    PollState,
    StreamInfo,
    parse_chat_message,
    parse_message_page,
)
from ytchat.chat.http import YoutubeApi, extract_video_id
from ytchat.chat.exceptions import (
    YoutubeChatError,
    MalformedUrlError,
    StreamNotFoundError,
    ChannelNotFoundError,
    ApiRequestError,
    ResponseParseError,
    ItemParseError,
    PollRequestError,
    NotAuthorizedError,
    AuthorizationError,
    AlreadyInProgressError,
    InvalidStateError,
    MissingCodeError,
    RedirectError,
    TokenExchangeError,
)

__all__ = [
    "ChatPoller",
    "PollerState",
    "ChatMessage",
    "PollState",
    "StreamInfo",
    "parse_chat_message",
    "parse_message_page",
    "YoutubeApi",
    "extract_video_id",
    "YoutubeChatError",
    "MalformedUrlError",
    "StreamNotFoundError",
    "ChannelNotFoundError",
    "ApiRequestError",
    "ResponseParseError",
    "ItemParseError",
    "PollRequestError",
    "NotAuthorizedError",
    "AuthorizationError",
    "AlreadyInProgressError",
    "InvalidStateError",
    "MissingCodeError",
    "RedirectError",
    "TokenExchangeError",
]
