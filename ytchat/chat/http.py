"""
HTTP API for resolving streams and fetching live chat messages.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Type
from urllib.parse import parse_qs, urlsplit

import aiohttp

from ytchat.chat.exceptions import (
    ApiRequestError,
    ChannelNotFoundError,
    MalformedUrlError,
    PollRequestError,
    ResponseParseError,
    StreamNotFoundError,
)
from ytchat.chat.models import StreamInfo

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3/"

MESSAGE_FIELDS = (
    "nextPageToken,pollingIntervalMillis,"
    "items(id,authorDetails(displayName),snippet(type,publishedAt,displayMessage))"
)


def extract_video_id(stream_url: str) -> str:
    """
    Get the video ID from a stream URL such as
    ``https://www.youtube.com/watch?v=<id>``.

    Raises:
        MalformedUrlError: If the URL has no single non-empty ``v`` parameter
    """
    try:
        query = urlsplit(stream_url).query
    except ValueError as e:
        raise MalformedUrlError(f"Invalid video URL {stream_url!r}: {e}")

    values = parse_qs(query).get("v", [])
    if len(values) != 1:
        raise MalformedUrlError(f"Missing parameter in video URL: {stream_url}")
    return values[0]


def parse_stream_info(data: Any) -> StreamInfo:
    """
    Extract title and live chat ID from a ``videos`` response.

    Exactly one item is expected; zero items means the video doesn't exist,
    a missing ``activeLiveChatId`` means it isn't live.

    Raises:
        StreamNotFoundError: If the response doesn't describe one live video
    """
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list) or len(items) != 1 or not isinstance(items[0], dict):
        raise StreamNotFoundError("Video not found")

    item = items[0]
    snippet = item.get("snippet")
    title = snippet.get("title") if isinstance(snippet, dict) else None
    if not isinstance(title, str) or not title:
        raise StreamNotFoundError("Missing live stream title")

    details = item.get("liveStreamingDetails")
    live_chat_id = details.get("activeLiveChatId") if isinstance(details, dict) else None
    if not isinstance(live_chat_id, str) or not live_chat_id:
        raise StreamNotFoundError("Missing live chat ID (video is not live)")

    return StreamInfo(title=title, live_chat_id=live_chat_id)


def parse_channel_id(data: Any) -> str:
    """
    Extract the channel ID from a ``channels?forHandle=`` response.

    Raises:
        ChannelNotFoundError: Unless exactly one channel ID is present
    """
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list) or len(items) != 1 or not isinstance(items[0], dict):
        raise ChannelNotFoundError("Unexpected channel ID results")

    channel_id = items[0].get("id")
    if not isinstance(channel_id, str) or not channel_id:
        raise ChannelNotFoundError("Unexpected value for channel ID")
    return channel_id


def parse_live_streams(data: Any) -> List[str]:
    """Extract video IDs from a ``search?eventType=live`` response."""
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return []

    video_ids = []
    for item in items:
        id_obj = item.get("id") if isinstance(item, dict) else None
        video_id = id_obj.get("videoId") if isinstance(id_obj, dict) else None
        if not isinstance(video_id, str):
            logger.warning("Unexpected format for video ID")
            continue
        video_ids.append(video_id)
    return video_ids


class YoutubeApi:
    """
    Thin wrapper over the YouTube Data API v3 resources used for live chat.

    Every request carries the headers returned by ``auth_headers``: either
    an API key or a bearer token, never both.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        auth_headers: Callable[[], Dict[str, str]],
        timeout: float = 10.0,
        base_url: str = YOUTUBE_API_BASE_URL,
    ):
        self._session = session
        self._auth_headers = auth_headers
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._base_url = base_url

    async def _get(
        self,
        resource: str,
        params: Dict[str, str],
        error_cls: Type[ApiRequestError],
    ) -> Any:
        url = f"{self._base_url}{resource}"
        try:
            async with self._session.get(
                url,
                params=params,
                headers=self._auth_headers(),
                timeout=self._timeout,
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise error_cls(
                        f"{resource} request failed: HTTP {response.status}: {body[:200]}"
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ResponseParseError(f"Invalid JSON from {resource}: {e}")

        except aiohttp.ClientError as e:
            raise error_cls(f"Network error: {e}")
        except asyncio.TimeoutError:
            raise error_cls(f"{resource} request timed out")

    async def get_stream_info(self, video_id: str) -> StreamInfo:
        """
        Get the title and live chat ID of a video.

        Raises:
            StreamNotFoundError: If the video doesn't exist or isn't live
            ApiRequestError: On transport or HTTP errors
        """
        data = await self._get(
            "videos",
            {
                "part": "snippet,liveStreamingDetails",
                "fields": "items(snippet(title),liveStreamingDetails(activeLiveChatId))",
                "id": video_id,
            },
            ApiRequestError,
        )
        stream_info = parse_stream_info(data)
        logger.info(f"Resolved video {video_id}: {stream_info.title!r}")
        return stream_info

    async def get_chat_messages(
        self,
        live_chat_id: str,
        page_token: Optional[str] = None,
    ) -> Any:
        """
        Fetch one raw page of chat messages.

        Raises:
            PollRequestError: On transport or HTTP errors
            ResponseParseError: If the body isn't JSON
        """
        params = {
            "liveChatId": live_chat_id,
            "part": "snippet,authorDetails",
            "fields": MESSAGE_FIELDS,
        }
        if page_token:
            # Only request messages we haven't seen before
            params["pageToken"] = page_token
        return await self._get("liveChat/messages", params, PollRequestError)

    async def get_channel_id(self, handle: str) -> str:
        """
        Resolve a channel handle (``@name``) to a channel ID.

        Raises:
            ChannelNotFoundError: If the handle doesn't match exactly one channel
            ApiRequestError: On transport or HTTP errors
        """
        data = await self._get(
            "channels",
            {"part": "id", "fields": "items/id", "forHandle": handle},
            ApiRequestError,
        )
        channel_id = parse_channel_id(data)
        logger.info(f"Got channel ID for {handle}: {channel_id}")
        return channel_id

    async def get_live_streams(self, channel_id: str) -> List[str]:
        """
        Get IDs of the channel's current live broadcasts, newest first.

        Raises:
            ApiRequestError: On transport or HTTP errors
        """
        data = await self._get(
            "search",
            {
                "part": "snippet,id",
                "fields": "items/id/videoId",
                "eventType": "live",
                "channelId": channel_id,
                "order": "date",
                "type": "video",
            },
            ApiRequestError,
        )
        return parse_live_streams(data)
