"""Tests for random token generation and PKCE challenges."""

from unittest.mock import patch

import pytest

from ytchat.auth.pkce import ALPHABET, generate, make_challenge, new_pkce_pair


def test_alphabet():
    """Test the unreserved character set."""
    assert len(ALPHABET) == 66
    assert len(set(ALPHABET)) == 66


def test_generate_length_and_charset():
    """Test that tokens have the requested length and only allowed characters."""
    token = generate(128)

    assert len(token) == 128
    assert set(token) <= set(ALPHABET)


def test_generate_maps_bytes_modulo_alphabet():
    """Test the byte to character mapping."""
    with patch("ytchat.auth.pkce.os.urandom", return_value=bytes([0, 26, 52, 62, 65, 66, 255])):
        token = generate(7)

    # 255 % 66 == 57
    assert token == "aA0.-a5"


def test_generate_propagates_random_source_failure():
    """Test that a missing CSPRNG is reported rather than hidden."""
    with patch("ytchat.auth.pkce.os.urandom", side_effect=NotImplementedError("no urandom")):
        with pytest.raises(NotImplementedError):
            generate(32)


@pytest.mark.parametrize("length", [0, -1])
def test_generate_rejects_non_positive_length(length):
    with pytest.raises(ValueError):
        generate(length)


def test_generate_is_not_repeated():
    assert generate(32) != generate(32)


def test_make_challenge_rfc7636_vector():
    """Test the S256 example from RFC 7636 appendix B."""
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

    assert make_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_new_pkce_pair():
    verifier, challenge = new_pkce_pair()

    assert len(verifier) == 64
    assert challenge == make_challenge(verifier)
    assert "=" not in challenge


@pytest.mark.parametrize("length", [42, 129])
def test_new_pkce_pair_rejects_invalid_length(length):
    """Test the verifier length bounds."""
    with pytest.raises(ValueError):
        new_pkce_pair(length)
