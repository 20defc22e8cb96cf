"""
VaultSession — Unlock state for the service layer.

Provides the public API used by storage, import/export and UI code:
- ``setup_master_password(password, confirm)``: first run
- ``unlock(password)`` / ``lock()``: hold or drop the live key
- ``encrypt(value)`` / ``decrypt(blob)``: credential values as text
- ``change_master_password(old, new, entries)``: optionally re-encrypting
- ``reset()``: forget the master password

All cryptographic work is delegated to :class:`MasterPasswordManager`.

Security Note:
    Never log plaintext or ciphertext values. Decrypted values exist in
    process memory as ``str`` while in use; this is an accepted limitation.
"""
import logging
from typing import Any, Mapping, Optional

from .config import VaultSettings
from .master import MasterPasswordManager, VaultState
from .rekey import reencrypt_entries

logger = logging.getLogger("passvault.vault")


class VaultSession:
    """Unlock/lock façade over a :class:`MasterPasswordManager`.

    Use as a context manager to guarantee the key is wiped on exit::

        with VaultSession.open() as vault:
            vault.unlock(password)
            blob = vault.encrypt("s3cr3t")
    """

    def __init__(self, manager: MasterPasswordManager):
        self._manager = manager

    @classmethod
    def open(cls, settings: Optional[VaultSettings] = None) -> "VaultSession":
        """Create a session on the file-backed configuration.

        Args:
            settings: Vault settings; read from the environment when omitted.
        """
        return cls(MasterPasswordManager.from_settings(settings))

    @property
    def manager(self) -> MasterPasswordManager:
        return self._manager

    @property
    def state(self) -> VaultState:
        return self._manager.state

    def is_initialized(self) -> bool:
        return self._manager.is_initialized()

    def is_unlocked(self) -> bool:
        return self._manager.is_unlocked()

    def setup_master_password(self, password: str, confirm_password: str) -> None:
        self._manager.setup(password, confirm_password)

    def unlock(self, password: str) -> None:
        self._manager.unlock(password)

    def lock(self) -> None:
        self._manager.lock()

    def encrypt(self, plaintext: str) -> bytes:
        """Seal a credential value under the live key."""
        return self._manager.encrypt(plaintext)

    def decrypt(self, blob: bytes) -> str:
        """Open a credential value sealed by :meth:`encrypt`."""
        return self._manager.decrypt_text(blob)

    def change_master_password(
        self,
        old_password: str,
        new_password: str,
        entries: Optional[Mapping[Any, bytes]] = None,
    ) -> Optional[dict]:
        """Change the master password, optionally re-encrypting ``entries``.

        Without ``entries`` nothing is re-encrypted and every envelope sealed
        before the change stops opening.

        Args:
            old_password: Current master password.
            new_password: Replacement master password.
            entries: Mapping of entry id to envelope under the current key.

        Returns:
            Mapping of entry id to the envelope under the new key, or None
            when ``entries`` was not given. The caller persists it.
        """
        if entries is None:
            self._manager.change_master_password(old_password, new_password)
            return None

        result: dict = {}

        def _rekey(old_key, new_key):
            rotated, stats = reencrypt_entries(
                entries, old_key, new_key, self._manager.settings.cipher_backend,
            )
            result.update(rotated)
            logger.info("Re-encrypted %d entries for password change", stats["rotated"])

        self._manager.change_master_password(
            old_password, new_password, rekey=_rekey,
        )
        return result

    def reset(self) -> None:
        """Forget the master password. Everything sealed becomes unrecoverable."""
        self._manager.reset()

    def __enter__(self) -> "VaultSession":
        return self

    def __exit__(self, *exc) -> None:
        self.lock()
