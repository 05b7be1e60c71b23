"""
OAuth2 authorization code flow (with PKCE) for the YouTube Data API.

A loopback HTTP listener catches the provider's redirect and exchanges the
authorization code for tokens.

References:
- https://developers.google.com/identity/protocols/oauth2/native-app
- https://datatracker.ietf.org/doc/html/rfc7636
"""

import asyncio
import html
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

import aiohttp
from aiohttp import web

from ytchat.auth import pkce
from ytchat.chat.exceptions import (
    AlreadyInProgressError,
    AuthorizationError,
    InvalidStateError,
    MissingCodeError,
    RedirectError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_SCOPE = "https://www.googleapis.com/auth/youtube.readonly"

REDIRECT_HOST = "127.0.0.1"
REDIRECT_PATH = "/oauth2callback"
DEFAULT_PORT = 8080

STATE_TOKEN_LENGTH = 32

PAGE_TEMPLATE = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>{title}</title></head>
<body><h1>{title}</h1><p>{message}</p></body>
</html>
"""


@dataclass
class TokenSet:
    """OAuth2 tokens for the authorized user."""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int = 3600  # seconds
    scope: Optional[str] = None
    expiry: Optional[datetime] = None

    def __post_init__(self):
        if self.expiry is None:
            self.expiry = datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)

    def is_expired(self) -> bool:
        """Check whether the access token has expired (1 minute margin)."""
        if self.expiry is None:
            return False
        return datetime.now(timezone.utc) >= self.expiry - timedelta(minutes=1)

    @classmethod
    def from_response(cls, body: Any) -> "TokenSet":
        """
        Build a TokenSet from a token endpoint response.

        Raises:
            TokenExchangeError: If the response has no access token
        """
        if not isinstance(body, dict) or not body.get("access_token"):
            raise TokenExchangeError("Token response has no access_token")

        try:
            expires_in = int(body.get("expires_in", 3600))
        except (TypeError, ValueError):
            raise TokenExchangeError(f"Invalid expires_in: {body.get('expires_in')!r}")

        return cls(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            token_type=body.get("token_type", "Bearer"),
            expires_in=expires_in,
            scope=body.get("scope"),
        )


@dataclass
class AuthorizationSession:
    """Secrets of a pending authorization; discarded on redirect."""
    pkce_verifier: str
    pkce_challenge: str
    state_token: str


class AuthState(str, Enum):
    """Authorization flow states."""

    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_CODE = "exchanging_code"
    AUTHORIZED = "authorized"
    FAILED = "failed"


ErrorCallback = Callable[[Exception], Awaitable[None]]
AuthorizedCallback = Callable[[TokenSet], Awaitable[None]]


class OAuthFlow:
    """
    Runs the authorization code flow for a desktop/CLI app.

    Usage:
        flow = OAuthFlow(client_id, client_secret, http_session)
        url = await flow.generate_auth_url()
        webbrowser.open(url)
        token = await flow.wait_for_authorization()
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str],
        http_session: aiohttp.ClientSession,
        port: int = DEFAULT_PORT,
        scope: str = DEFAULT_SCOPE,
        host: str = REDIRECT_HOST,
        timeout: float = 10.0,
        on_error: Optional[ErrorCallback] = None,
        on_authorized: Optional[AuthorizedCallback] = None,
    ):
        """
        Args:
            client_id: OAuth client ID of the Google Cloud application
            client_secret: Client secret (desktop apps still send it)
            http_session: Session used for the token request
            port: Local port of the redirect listener
            scope: Requested scope
            host: Local address of the redirect listener
            timeout: Token request timeout in seconds
            on_error: Awaited with failures of the redirect handling
            on_authorized: Awaited with the tokens once authorized
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self._http = http_session
        self._host = host
        self._port = port
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._on_error = on_error
        self._on_authorized = on_authorized

        self._state = AuthState.IDLE
        self._auth_session: Optional[AuthorizationSession] = None
        self._runner: Optional[web.AppRunner] = None
        self._shutdown_task: Optional[asyncio.Task] = None
        self._finished = asyncio.Event()
        self._error: Optional[AuthorizationError] = None
        self.token: Optional[TokenSet] = None

    @property
    def redirect_uri(self) -> str:
        return f"http://{self._host}:{self._port}{REDIRECT_PATH}"

    @property
    def state(self) -> AuthState:
        """Get the current flow state."""
        return self._state

    @property
    def is_authorized(self) -> bool:
        return self._state is AuthState.AUTHORIZED and self.token is not None

    async def generate_auth_url(self) -> str:
        """
        Start an authorization session and return the URL the user must open.

        Starts the redirect listener as a side effect.

        Raises:
            AlreadyInProgressError: If a session is already pending
            OSError: If the redirect port can't be bound
        """
        if self._auth_session is not None:
            raise AlreadyInProgressError("Authorization is already in progress")

        verifier, challenge = pkce.new_pkce_pair()
        self._auth_session = AuthorizationSession(
            pkce_verifier=verifier,
            pkce_challenge=challenge,
            state_token=pkce.generate(STATE_TOKEN_LENGTH),
        )

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": self._auth_session.state_token,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "access_type": "offline",
        }

        try:
            await self._start_listener()
        except BaseException:
            self._auth_session = None
            raise

        self._state = AuthState.AWAITING_REDIRECT
        self._finished.clear()
        self._error = None
        logger.info(f"Waiting for OAuth redirect on {self.redirect_uri}")
        return f"{AUTH_URL}?{urlencode(params)}"

    async def _start_listener(self) -> None:
        """Start the loopback HTTP listener for the redirect."""
        app = web.Application()
        app.router.add_get(REDIRECT_PATH, self.handle_redirect)

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def handle_redirect(self, request: web.Request) -> web.Response:
        """
        Handle the provider's redirect (route handler of the listener).

        The session is consumed before anything else, so a redirect can be
        processed at most once. The browser's response is held open while
        the code is exchanged for tokens.
        """
        auth_session, self._auth_session = self._auth_session, None
        try:
            if auth_session is None:
                logger.warning("Received OAuth redirect with no authorization in progress")
                return _page("Authorization failed", "No authorization is in progress.", 400)

            try:
                code = _validate_redirect(request.query, auth_session.state_token)
            except AuthorizationError as e:
                logger.error(f"OAuth redirect rejected: {e}")
                await self._fail(e)
                return _page("Authorization failed", str(e), 400)

            self._state = AuthState.EXCHANGING_CODE
            try:
                token = await self.exchange_code(code, auth_session.pkce_verifier)
            except TokenExchangeError as e:
                logger.error(f"Token exchange failed: {e}")
                await self._fail(e)
                return _page("Authorization failed", str(e), 502)
            except Exception as e:
                logger.error(f"Unexpected error during token exchange: {e}", exc_info=True)
                await self._fail(TokenExchangeError(f"Unexpected error: {e}"))
                return _page("Authorization failed", "Token exchange failed.", 502)

            self.token = token
            self._state = AuthState.AUTHORIZED
            logger.info(f"Authorization succeeded (token expires {token.expiry})")
            if self._on_authorized:
                await self._on_authorized(token)
            return _page(
                "Authorization complete",
                "You can close this window and return to the application.",
                200,
            )

        finally:
            self._schedule_listener_shutdown()
            if self._state in (AuthState.AUTHORIZED, AuthState.FAILED):
                self._finished.set()

    async def exchange_code(self, code: str, verifier: str) -> TokenSet:
        """
        Exchange an authorization code and PKCE verifier for tokens.

        Raises:
            TokenExchangeError: If the request fails or is rejected
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "code_verifier": verifier,
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret

        try:
            async with self._http.post(TOKEN_URL, data=data, timeout=self._timeout) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None

                if response.status != 200:
                    detail = "unknown error"
                    if isinstance(body, dict):
                        detail = body.get("error_description") or body.get("error") or detail
                    raise TokenExchangeError(
                        f"Token endpoint returned HTTP {response.status}: {detail}"
                    )

        except aiohttp.ClientError as e:
            raise TokenExchangeError(f"Network error: {e}")
        except asyncio.TimeoutError:
            raise TokenExchangeError("Token request timed out")

        return TokenSet.from_response(body)

    async def wait_for_authorization(self) -> TokenSet:
        """
        Wait until the redirect has been handled.

        Raises:
            AuthorizationError: If the flow failed or was cancelled
        """
        await self._finished.wait()
        if self._shutdown_task is not None:
            await self._shutdown_task
        if self._error is not None:
            raise self._error
        return self.token

    async def _fail(self, error: AuthorizationError) -> None:
        self._state = AuthState.FAILED
        self._error = error
        if self._on_error:
            await self._on_error(error)

    def _schedule_listener_shutdown(self) -> None:
        # Cleanup must not run inside the handler it waits for
        runner, self._runner = self._runner, None
        if runner is not None:
            self._shutdown_task = asyncio.create_task(self._shutdown_listener(runner))

    async def _shutdown_listener(self, runner: web.AppRunner) -> None:
        await runner.cleanup()
        logger.info("OAuth redirect listener stopped")

    async def close(self) -> None:
        """Stop the listener and abandon any pending authorization."""
        pending = self._auth_session is not None
        self._auth_session = None
        self._schedule_listener_shutdown()
        if self._shutdown_task is not None:
            await self._shutdown_task

        if pending:
            self._state = AuthState.FAILED
            self._error = AuthorizationError("Authorization was cancelled")
            self._finished.set()


def _validate_redirect(params, state_token: str) -> str:
    """
    Check the redirect query parameters and return the authorization code.

    Raises:
        RedirectError: If the provider reported an error
        MissingCodeError: If there is no code
        InvalidStateError: If the state doesn't match the session's
    """
    error = params.get("error")
    if error:
        raise RedirectError(f"Authorization was denied: {error}")

    code = params.get("code")
    if not code:
        raise MissingCodeError("Redirect has no authorization code")

    state = params.get("state")
    if not state or not secrets.compare_digest(state.encode(), state_token.encode()):
        raise InvalidStateError("Redirect state does not match the authorization request")

    return code


def _page(title: str, message: str, status: int) -> web.Response:
    response = web.Response(
        text=PAGE_TEMPLATE.format(title=html.escape(title), message=html.escape(message)),
        status=status,
        content_type="text/html",
    )
    response.force_close()
    return response
