"""Tests for the chat client façade."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ytchat.auth.oauth import TokenSet
from ytchat.chat.exceptions import NotAuthorizedError
from ytchat.chat.models import StreamInfo
from ytchat.chat.poller import PollerState
from ytchat.client import YoutubeChatClient
from ytchat.models import Config


def test_requires_credentials():
    with pytest.raises(ValueError):
        YoutubeChatClient()


def test_api_key_headers():
    """Test that an API key is sent without a bearer token."""
    client = YoutubeChatClient(api_key="key", client_id="client-id")
    client.token = TokenSet(access_token="access")

    assert client.uses_api_key
    assert client._auth_headers() == {"x-goog-api-key": "key"}


def test_oauth_headers():
    """Test that a user token is sent without an API key."""
    client = YoutubeChatClient(client_id="client-id")
    client.token = TokenSet(access_token="access")

    assert not client.uses_api_key
    assert client._auth_headers() == {"Authorization": "Bearer access"}


def test_oauth_headers_without_token():
    client = YoutubeChatClient(client_id="client-id")

    with pytest.raises(NotAuthorizedError):
        client._auth_headers()


def test_expired_token_is_still_sent(caplog):
    client = YoutubeChatClient(client_id="client-id")
    client.token = TokenSet(
        access_token="stale",
        expiry=datetime.now(timezone.utc) - timedelta(hours=1),
    )

    assert client._auth_headers() == {"Authorization": "Bearer stale"}
    assert "expired" in caplog.text


def test_from_config():
    config = Config(api_key="key", client_id="client-id", max_backoff_sec=30)

    assert YoutubeChatClient.from_config(config).uses_api_key
    oauth_client = YoutubeChatClient.from_config(config, use_oauth=True)
    assert not oauth_client.uses_api_key
    assert oauth_client._max_backoff == 30


@pytest.mark.asyncio
async def test_connect_requires_authorization():
    """Test that OAuth clients can't poll before authorizing."""
    client = YoutubeChatClient(client_id="client-id")

    with pytest.raises(NotAuthorizedError):
        await client.connect("https://www.youtube.com/watch?v=abc")

    assert client.state is PollerState.IDLE


@pytest.mark.asyncio
async def test_generate_auth_url_requires_client_id():
    client = YoutubeChatClient(api_key="key")

    with pytest.raises(NotAuthorizedError):
        await client.generate_auth_url()


@pytest.mark.asyncio
async def test_wait_for_authorization_requires_started_flow():
    client = YoutubeChatClient(client_id="client-id")

    with pytest.raises(NotAuthorizedError):
        await client.wait_for_authorization()


@pytest.mark.asyncio
async def test_connect_dispatches_on_connect():
    """Test that connecting starts the poller and notifies handlers."""
    stream_info = StreamInfo(title="Live", live_chat_id="chat-1")
    poller = MagicMock()
    poller.connect = AsyncMock(return_value=stream_info)
    poller.stop = AsyncMock()
    connected = []

    client = YoutubeChatClient(api_key="key")

    @client.event
    async def on_connect(info):
        connected.append(info)

    with patch("ytchat.client.ChatPoller", return_value=poller):
        async with client:
            assert await client.connect("https://www.youtube.com/watch?v=abc") == stream_info

    assert connected == [stream_info]
    poller.connect.assert_awaited_once_with("https://www.youtube.com/watch?v=abc")
    poller.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_dispatch_swallows_handler_errors():
    """Test that a failing handler doesn't propagate."""
    client = YoutubeChatClient(api_key="key")
    received = []

    @client.event
    async def on_messages(messages):
        raise RuntimeError("handler bug")

    @client.event
    def on_error(error):
        received.append(error)

    await client._handle_messages([])
    await client._handle_error(ValueError("poll failed"))

    assert len(received) == 1


@pytest.mark.asyncio
async def test_handle_authorized_stores_token():
    client = YoutubeChatClient(client_id="client-id")
    token = TokenSet(access_token="access")

    await client._handle_authorized(token)

    assert client.is_authorized
    assert client.token is token


@pytest.mark.asyncio
async def test_get_live_streams():
    """Test resolving a handle then searching its live broadcasts."""
    client = YoutubeChatClient(api_key="key")
    api = MagicMock()
    api.get_channel_id = AsyncMock(return_value="UC123")
    api.get_live_streams = AsyncMock(return_value=["v1"])

    with patch.object(client, "_get_api", return_value=api):
        assert await client.get_live_streams("@name") == ["v1"]

    api.get_channel_id.assert_awaited_once_with("@name")
    api.get_live_streams.assert_awaited_once_with("UC123")
