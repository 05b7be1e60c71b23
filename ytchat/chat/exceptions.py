"""
Custom exceptions for the YouTube live chat client.
"""


class YoutubeChatError(Exception):
    """Base exception for all YouTube chat errors."""
    pass


class MalformedUrlError(YoutubeChatError):
    """Stream URL has no usable ``v`` query parameter."""
    pass


class StreamNotFoundError(YoutubeChatError):
    """Video does not exist or is not currently live."""
    pass


class ChannelNotFoundError(YoutubeChatError):
    """Channel handle did not resolve to exactly one channel."""
    pass


class ResponseParseError(YoutubeChatError):
    """API response is missing a required top-level field."""
    pass


class ItemParseError(YoutubeChatError):
    """A single chat item could not be parsed."""
    pass


class ApiRequestError(YoutubeChatError):
    """Request to the YouTube Data API failed (transport or HTTP error)."""
    pass


class PollRequestError(ApiRequestError):
    """Request for a page of chat messages failed."""
    pass


class NotAuthorizedError(YoutubeChatError):
    """No credentials are available for an API request."""
    pass


class AuthorizationError(YoutubeChatError):
    """Base exception for OAuth2 authorization failures."""
    pass


class AlreadyInProgressError(AuthorizationError):
    """An authorization session is already pending."""
    pass


class InvalidStateError(AuthorizationError):
    """Redirect carried a missing or mismatched state token."""
    pass


class MissingCodeError(AuthorizationError):
    """Redirect carried no authorization code."""
    pass


class RedirectError(AuthorizationError):
    """Provider reported an error (e.g. access denied) in the redirect."""
    pass


class TokenExchangeError(AuthorizationError):
    """Exchanging the authorization code for tokens failed."""
    pass
