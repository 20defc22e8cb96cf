"""
Vault Re-encryption — Move sealed entries from one key to another.

Changing the master password produces a brand-new key; nothing sealed under
the previous key opens under it. This pass opens each entry with the old key
and seals it again with the new one. It is normally run through the
``rekey`` callback of ``MasterPasswordManager.change_master_password`` so
that both keys are alive at the same time.

Security Note:
    Plaintext exists in memory only during re-encryption of each entry and
    its buffer is zeroed as soon as the entry is sealed again.
    Never log plaintext or ciphertext values, only entry ids.
"""
import logging
from typing import Any, Mapping, Optional

from ..exceptions import CipherError
from .crypto import DerivedKey, open_into, seal, wipe_buffer

logger = logging.getLogger("passvault.vault")


def reencrypt_entries(
    entries: Mapping[Any, bytes],
    old_key: DerivedKey,
    new_key: DerivedKey,
    backend: Optional[str] = None,
    skip_errors: bool = False,
) -> tuple[dict, dict]:
    """Re-encrypt every envelope in ``entries`` from old_key to new_key.

    Args:
        entries: Mapping of entry id to envelope sealed under ``old_key``.
        old_key: Key the entries are currently sealed under.
        new_key: Key to seal them under.
        backend: Cipher backend name; defaults to the process-wide backend.
        skip_errors: Count and log entries that fail to open instead of
            raising. Off by default.

    Returns:
        Tuple of (new envelopes by entry id, stats dict with keys:
        total, rotated, errors, skipped). Empty envelopes are skipped.

    Raises:
        CipherError: If an entry fails to open and ``skip_errors`` is False.
    """
    stats = {"total": 0, "rotated": 0, "errors": 0, "skipped": 0}
    rotated: dict = {}

    logger.info("Starting re-encryption of %d entries", len(entries))

    for entry_id, envelope in entries.items():
        stats["total"] += 1
        if not envelope:
            stats["skipped"] += 1
            continue
        try:
            plaintext = open_into(old_key, envelope, backend)
            try:
                rotated[entry_id] = seal(new_key, plaintext, backend)
            finally:
                wipe_buffer(plaintext)
            stats["rotated"] += 1
        except CipherError as err:
            if not skip_errors:
                logger.error(
                    "Re-encryption aborted at entry id=%s: %s", entry_id, err,
                )
                raise
            logger.error("Error re-encrypting entry id=%s: %s", entry_id, err)
            stats["errors"] += 1

    logger.info("Re-encryption complete: %s", stats)
    return rotated, stats
