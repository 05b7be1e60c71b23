"""Random tokens for PKCE verifiers and OAuth state values."""

import base64
import hashlib
import os
import string
from typing import Tuple

# Unreserved URI characters (RFC 3986), as allowed in a PKCE verifier
ALPHABET = string.ascii_letters + string.digits + "._~-"

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


def generate(length: int) -> str:
    """
    Generate a random string of ``length`` characters from ``ALPHABET``.

    Bytes come from the operating system's CSPRNG (``os.urandom``); if it
    is unavailable the error propagates to the caller.
    """
    if length <= 0:
        raise ValueError(f"length must be positive, got {length}")

    data = os.urandom(length)
    return "".join(ALPHABET[b % len(ALPHABET)] for b in data)


def make_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a PKCE verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def new_pkce_pair(length: int = 64) -> Tuple[str, str]:
    """Return a fresh ``(verifier, challenge)`` pair."""
    if not MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH:
        raise ValueError(
            f"PKCE verifier length must be between {MIN_VERIFIER_LENGTH} "
            f"and {MAX_VERIFIER_LENGTH}, got {length}"
        )
    verifier = generate(length)
    return verifier, make_challenge(verifier)
