"""
Tests for the master password verification token.
"""
import pytest

from passvault.vault.crypto import NONCE_SIZE, open_envelope, seal
from passvault.vault.verification import VERIFICATION_TOKEN, build_verifier, verify


class TestVerifier:
    """Tests for build_verifier/verify."""

    def test_verifier_opens_to_token(self, key):
        token = build_verifier(key)
        assert open_envelope(key, token) == VERIFICATION_TOKEN

    def test_correct_key_verifies(self, key):
        assert verify(key, build_verifier(key)) is True

    def test_wrong_key_rejected(self, key, other_key):
        assert verify(other_key, build_verifier(key)) is False

    def test_fresh_verifier_every_time(self, key):
        """Each verifier uses its own nonce."""
        assert build_verifier(key) != build_verifier(key)

    def test_corrupted_token_rejected(self, key):
        token = bytearray(build_verifier(key))
        token[NONCE_SIZE] ^= 0x01
        assert verify(key, bytes(token)) is False

    @pytest.mark.parametrize("stored", [None, b"", b"\x00" * 5])
    def test_missing_or_short_token_rejected(self, key, stored):
        assert verify(key, stored) is False

    def test_wrong_plaintext_rejected(self, key):
        """A token that authenticates but holds another value is refused."""
        assert verify(key, seal(key, b"NOT_THE_TOKEN")) is False

    def test_token_prefix_rejected(self, key):
        assert verify(key, seal(key, VERIFICATION_TOKEN[:-1])) is False

    def test_backend_is_honoured(self, key):
        token = build_verifier(key, backend="chacha20")
        assert verify(key, token, backend="chacha20") is True
        assert verify(key, token, backend="aesgcm") is False

    def test_recovered_token_is_zeroed(self, key, opened_buffers):
        """The decrypted token does not outlive the comparison."""
        assert verify(key, build_verifier(key)) is True
        assert len(opened_buffers) == 1
        recovered = opened_buffers[0]
        assert len(recovered) == len(VERIFICATION_TOKEN)
        assert not any(recovered)

    def test_mismatched_token_is_zeroed(self, key, opened_buffers):
        assert verify(key, seal(key, b"NOT_THE_TOKEN")) is False
        assert len(opened_buffers) == 1
        assert opened_buffers[0] == bytearray(len(b"NOT_THE_TOKEN"))
