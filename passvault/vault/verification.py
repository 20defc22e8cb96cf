"""
Master password verification.

A fixed, public token is sealed under the derived key at setup time. A
candidate password is correct if and only if the stored token opens under
the candidate key and the recovered plaintext equals the token exactly.

Security Note:
    Callers only ever learn "valid" or "invalid"; a wrong key and a corrupted
    token are indistinguishable from outside this module.
"""
import hmac
import logging
from typing import Optional

from ..exceptions import CipherError
from .crypto import DerivedKey, open_into, seal, wipe_buffer

logger = logging.getLogger("passvault.vault")

# Must never change: every existing vault was set up against this value.
VERIFICATION_TOKEN = b"PASSWORD_MANAGER_VERIFICATION_TOKEN_2024"


def build_verifier(key: DerivedKey, backend: Optional[str] = None) -> bytes:
    """Seal the verification token under ``key``."""
    return seal(key, VERIFICATION_TOKEN, backend)


def verify(
    key: DerivedKey,
    stored_token: Optional[bytes],
    backend: Optional[str] = None,
) -> bool:
    """Return True if ``stored_token`` proves ``key`` is the vault key.

    Args:
        key: Candidate key derived from the password being checked.
        stored_token: Encrypted token persisted at setup.
        backend: Cipher backend name; defaults to the process-wide backend.
    """
    try:
        recovered = open_into(key, stored_token, backend)
    except CipherError:
        logger.debug("Verification token did not open under candidate key")
        return False
    try:
        return hmac.compare_digest(recovered, VERIFICATION_TOKEN)
    finally:
        wipe_buffer(recovered)
