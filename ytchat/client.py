"""
YouTube live chat client: authorization, stream resolution and polling.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from ytchat.auth.oauth import DEFAULT_PORT, DEFAULT_SCOPE, OAuthFlow, TokenSet
from ytchat.chat.exceptions import NotAuthorizedError
from ytchat.chat.http import YoutubeApi
from ytchat.chat.models import DEFAULT_POLL_INTERVAL_MS, ChatMessage, PollState, StreamInfo
from ytchat.chat.poller import ChatPoller, PollerState
from ytchat.models import Config

logger = logging.getLogger(__name__)


class YoutubeChatClient:
    """
    YouTube live chat client.

    Authenticates with either a static API key or an OAuth2 user token
    (obtained through ``generate_auth_url``), never both.

    Usage:
        client = YoutubeChatClient(api_key="...")

        @client.event
        async def on_messages(messages):
            for message in messages:
                print(f"{message.display_name}: {message.content}")

        await client.connect("https://www.youtube.com/watch?v=...")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        oauth_port: int = DEFAULT_PORT,
        oauth_scope: str = DEFAULT_SCOPE,
        min_retry_delay: float = 1.0,
        max_backoff: float = 60.0,
        request_timeout: float = 10.0,
        default_poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        """
        Initialize chat client.

        Args:
            api_key: YouTube Data API key; if set, OAuth is not used
            client_id: OAuth client ID (required without an API key)
            client_secret: OAuth client secret
            oauth_port: Local port for the OAuth redirect listener
            oauth_scope: Scope requested during authorization
            min_retry_delay: Minimum delay before retrying a failed poll (seconds)
            max_backoff: Maximum delay between retries of failed polls (seconds)
            request_timeout: Timeout of API requests in seconds
            default_poll_interval_ms: Polling interval until the API sends one
        """
        if not api_key and not client_id:
            raise ValueError("Either api_key or client_id is required")

        self._api_key = api_key
        self._client_id = client_id
        self._client_secret = client_secret
        self._oauth_port = oauth_port
        self._oauth_scope = oauth_scope
        self._min_retry_delay = min_retry_delay
        self._max_backoff = max_backoff
        self._request_timeout = request_timeout
        self._default_poll_interval_ms = default_poll_interval_ms

        self._session: Optional[aiohttp.ClientSession] = None
        self._api: Optional[YoutubeApi] = None
        self._oauth: Optional[OAuthFlow] = None
        self._poller: Optional[ChatPoller] = None
        self._event_handlers: Dict[str, Callable] = {}

        self.token: Optional[TokenSet] = None

        logger.info(
            "Initialized YoutubeChatClient "
            f"({'API key' if self.uses_api_key else 'OAuth'} authentication)"
        )

    @classmethod
    def from_config(cls, config: Config, use_oauth: bool = False) -> "YoutubeChatClient":
        """Create a client from configuration, optionally forcing OAuth."""
        return cls(
            api_key=None if use_oauth else config.api_key,
            client_id=config.client_id,
            client_secret=config.client_secret,
            oauth_port=config.oauth_port,
            oauth_scope=config.oauth_scope,
            min_retry_delay=config.min_retry_delay_sec,
            max_backoff=config.max_backoff_sec,
            request_timeout=config.request_timeout_sec,
            default_poll_interval_ms=config.default_poll_interval_ms,
        )

    def event(self, func: Callable) -> Callable:
        """
        Decorator for registering event handlers.

        Usage:
            @client.event
            async def on_messages(messages: list[ChatMessage]):
                ...

        Supported events:
            - on_messages(messages: list[ChatMessage]): New batch of chat messages
            - on_error(error: Exception): Failure not tied to an awaited call
              (redirect handling, poll cycles)
            - on_connect(stream_info: StreamInfo): Polling started
            - on_authorized(token: TokenSet): OAuth authorization succeeded
        """
        event_name = func.__name__
        self._event_handlers[event_name] = func
        logger.debug(f"Registered event handler: {event_name}")
        return func

    async def _dispatch_event(self, event_name: str, *args, **kwargs) -> None:
        """Dispatch an event to registered handlers."""
        handler = self._event_handlers.get(event_name)
        if handler:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(*args, **kwargs)
                else:
                    handler(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event handler {event_name}: {e}", exc_info=True)

    async def _handle_messages(self, messages: List[ChatMessage]) -> None:
        await self._dispatch_event("on_messages", messages)

    async def _handle_error(self, error: Exception) -> None:
        await self._dispatch_event("on_error", error)

    async def _handle_authorized(self, token: TokenSet) -> None:
        self.token = token
        await self._dispatch_event("on_authorized", token)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._api = None
        return self._session

    def _get_api(self) -> YoutubeApi:
        session = self._get_session()
        if self._api is None:
            self._api = YoutubeApi(
                session,
                auth_headers=self._auth_headers,
                timeout=self._request_timeout,
            )
        return self._api

    def _auth_headers(self) -> Dict[str, str]:
        """Headers authenticating an API request."""
        if self.uses_api_key:
            return {"x-goog-api-key": self._api_key}

        if self.token is None:
            raise NotAuthorizedError("Not authorized; complete the OAuth flow first")
        if self.token.is_expired():
            # TokenSet.refresh_token is kept but no refresh is attempted
            logger.warning("Access token has expired; requests may be rejected")
        return {"Authorization": f"Bearer {self.token.access_token}"}

    async def generate_auth_url(self) -> str:
        """
        Start OAuth authorization and return the URL the user must open.

        The redirect is handled in the background; its outcome is reported
        through ``on_authorized`` / ``on_error`` and ``wait_for_authorization``.

        Raises:
            NotAuthorizedError: If no OAuth client ID is configured
            AlreadyInProgressError: If an authorization is already pending
        """
        if not self._client_id:
            raise NotAuthorizedError("OAuth client ID is not configured")

        if self._oauth is None:
            self._oauth = OAuthFlow(
                client_id=self._client_id,
                client_secret=self._client_secret,
                http_session=self._get_session(),
                port=self._oauth_port,
                scope=self._oauth_scope,
                timeout=self._request_timeout,
                on_error=self._handle_error,
                on_authorized=self._handle_authorized,
            )
        return await self._oauth.generate_auth_url()

    async def wait_for_authorization(self) -> TokenSet:
        """
        Wait for the pending OAuth authorization to finish.

        Raises:
            NotAuthorizedError: If generate_auth_url() was never called
            AuthorizationError: If the authorization failed
        """
        if self._oauth is None:
            raise NotAuthorizedError("No authorization has been started")
        return await self._oauth.wait_for_authorization()

    async def connect(self, stream_url: str) -> StreamInfo:
        """
        Connect to the live chat of a stream and start polling it.

        Args:
            stream_url: URL of the live stream

        Returns:
            Title and live chat ID of the stream

        Raises:
            NotAuthorizedError: If OAuth is used and not yet authorized
            MalformedUrlError: If the URL has no video ID
            StreamNotFoundError: If the video doesn't exist or isn't live
            ApiRequestError: If the lookup request fails
        """
        if not self.uses_api_key and not self.is_authorized:
            raise NotAuthorizedError("Not authorized; call generate_auth_url() first")

        if self._poller is None:
            self._poller = ChatPoller(
                self._get_api(),
                on_messages=self._handle_messages,
                on_error=self._handle_error,
                max_backoff=self._max_backoff,
                default_poll_interval_ms=self._default_poll_interval_ms,
                min_retry_delay=self._min_retry_delay,
            )

        logger.info(f"Connecting to {stream_url}...")
        stream_info = await self._poller.connect(stream_url)
        await self._dispatch_event("on_connect", stream_info)
        return stream_info

    async def get_live_streams(self, handle: str) -> List[str]:
        """
        Get video IDs of the live broadcasts of a channel.

        Args:
            handle: Channel handle, e.g. ``@name``

        Raises:
            ChannelNotFoundError: If the handle doesn't resolve to one channel
        """
        api = self._get_api()
        channel_id = await api.get_channel_id(handle)
        return await api.get_live_streams(channel_id)

    async def stop(self) -> None:
        """Stop polling chat messages."""
        if self._poller:
            await self._poller.stop()

    async def close(self) -> None:
        """Stop polling, stop any pending authorization and release the HTTP session."""
        await self.stop()
        if self._oauth:
            await self._oauth.close()
        if self._session and not self._session.closed:
            await self._session.close()
        # All of these hold the closed session
        self._session = None
        self._api = None
        self._poller = None
        self._oauth = None

    async def __aenter__(self) -> "YoutubeChatClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def uses_api_key(self) -> bool:
        """Check if requests are authenticated with an API key."""
        return bool(self._api_key)

    @property
    def is_authorized(self) -> bool:
        """Check if an OAuth token is available."""
        return self.token is not None

    @property
    def state(self) -> PollerState:
        """Get the poller state."""
        return self._poller.state if self._poller else PollerState.IDLE

    @property
    def stream_info(self) -> Optional[StreamInfo]:
        """Get the stream currently being polled."""
        return self._poller.stream_info if self._poller else None

    @property
    def poll_state(self) -> Optional[PollState]:
        """Get the current pagination state."""
        return self._poller.poll_state if self._poller else None
