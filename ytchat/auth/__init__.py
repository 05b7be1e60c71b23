"""
OAuth2 authorization (code flow with PKCE) for the YouTube Data API.
"""

from ytchat.auth.oauth import AuthState, OAuthFlow, TokenSet
from ytchat.auth.pkce import generate, make_challenge, new_pkce_pair

__all__ = [
    "AuthState",
    "OAuthFlow",
    "TokenSet",
    "generate",
    "make_challenge",
    "new_pkce_pair",
]
