"""
MasterPasswordManager — Master password lifecycle and the live vault key.

States::

    UNINITIALIZED --setup--> UNLOCKED <--unlock-- LOCKED
                               |  ^                  ^
                               |  +--unlock----------+
                               +--lock---------------+
    any --reset--> UNINITIALIZED

- ``setup(password, confirm)``: one-time creation of salt and verifier
- ``unlock(password)``: verify the password and hold the derived key
- ``lock()``: wipe and drop the live key
- ``change_master_password(old, new)``: new salt, key and verifier
- ``reset()``: erase the configuration, no password required
- ``encrypt(value)`` / ``decrypt(blob)``: seal/open with the live key

Security Note:
    ``change_master_password`` does NOT re-encrypt existing entries. Entries
    sealed under the previous key stay sealed under it and can no longer be
    opened once the change completes, unless the caller passes a ``rekey``
    callback (see :func:`passvault.vault.rekey.reencrypt_entries`).

    ``reset`` is deliberately ungated. Whatever was sealed before becomes
    permanently unrecoverable; confirmation belongs to the caller.
"""
import enum
import logging
from typing import Callable, Optional, Union

from ..exceptions import (
    AlreadyInitialized,
    EmptyInput,
    InvalidPassword,
    NotInitialized,
    PasswordMismatch,
    VaultLocked,
)
from .config import VaultSettings
from .crypto import DerivedKey, derive_key, open_envelope, seal
from .locks import RWLock
from .store import ConfigStore, FileConfigStore, MasterPasswordConfig
from .verification import build_verifier, verify

logger = logging.getLogger("passvault.vault")

_INVALID_PASSWORD = "invalid master password"

RekeyCallback = Callable[[DerivedKey, DerivedKey], None]


class VaultState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class MasterPasswordManager:
    """Owns the master password configuration and the single live key.

    Settings default to :meth:`VaultSettings.from_env`.
    Configuration is loaded from ``store`` once at construction; a missing
    record means the vault is uninitialized, a malformed one raises
    :class:`MalformedConfiguration` and nothing is reset.

    ``setup``, ``unlock``, ``lock``, ``change_master_password`` and ``reset``
    are serialized against each other and against key use. ``encrypt`` and
    ``decrypt`` may run concurrently.
    """

    def __init__(
        self,
        store: ConfigStore,
        settings: Optional[VaultSettings] = None,
    ):
        self._store = store
        self._settings = settings or VaultSettings.from_env()
        self._lock = RWLock()
        self._key: Optional[DerivedKey] = None
        self._config: Optional[MasterPasswordConfig] = store.load()
        logger.info("Master password manager ready: state=%s", self._state().value)

    @classmethod
    def from_settings(
        cls, settings: Optional[VaultSettings] = None,
    ) -> "MasterPasswordManager":
        """Build a manager backed by the config file named in ``settings``.

        Settings default to :meth:`VaultSettings.from_env`.
        """
        settings = settings or VaultSettings.from_env()
        return cls(FileConfigStore(settings.config_path), settings)

    # ------------------------------------------------------------------
    # Internal helpers (callers hold the lock)
    # ------------------------------------------------------------------

    def _initialized(self) -> bool:
        return self._config is not None and self._config.is_initialized

    def _live_key(self) -> Optional[DerivedKey]:
        # a caller may have wiped a key it was handed; that key is unusable
        if self._key is None or self._key.is_wiped:
            return None
        return self._key

    def _state(self) -> VaultState:
        if not self._initialized():
            return VaultState.UNINITIALIZED
        if self._live_key() is None:
            return VaultState.LOCKED
        return VaultState.UNLOCKED

    def _require_config(self) -> MasterPasswordConfig:
        if not self._initialized():
            raise NotInitialized("master password not initialized")
        return self._config

    def _require_key(self) -> DerivedKey:
        key = self._live_key()
        if key is None:
            raise VaultLocked("vault is locked")
        return key

    def _replace_key(self, key: Optional[DerivedKey]) -> None:
        previous, self._key = self._key, key
        if previous is not None and previous is not key:
            previous.wipe()

    def _derive(self, password: str, salt: Optional[bytes] = None) -> DerivedKey:
        return derive_key(password, salt, self._settings.kdf_iterations)

    def _check_password(self, password: str) -> DerivedKey:
        """Derive a candidate key and prove it against the stored token."""
        config = self._require_config()
        candidate = self._derive(password, config.salt)
        if not verify(candidate, config.encrypted_token, self._settings.cipher_backend):
            candidate.wipe()
            logger.warning("Master password rejected")
            raise InvalidPassword(_INVALID_PASSWORD)
        return candidate

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def settings(self) -> VaultSettings:
        return self._settings

    @property
    def state(self) -> VaultState:
        with self._lock.read():
            return self._state()

    def is_initialized(self) -> bool:
        with self._lock.read():
            return self._initialized()

    def is_unlocked(self) -> bool:
        with self._lock.read():
            return self._live_key() is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def setup(self, password: str, confirm: str) -> DerivedKey:
        """Set up the master password for the first time.

        On success the vault is unlocked with the new key. The returned key
        is the live key; it is owned by the manager and wiped on lock. A
        caller that wipes it (for example by using it as a context manager)
        leaves the vault locked.

        Raises:
            PasswordMismatch: If password and confirm differ.
            EmptyInput: If the password is empty.
            AlreadyInitialized: If a master password already exists.
            ConfigurationIOError: If the configuration cannot be saved.
        """
        if password != confirm:
            raise PasswordMismatch("passwords do not match")
        if not password:
            raise EmptyInput("master password cannot be empty")
        with self._lock.write():
            if self._initialized():
                raise AlreadyInitialized("master password already initialized")
            key = self._derive(password)
            try:
                config = MasterPasswordConfig(
                    salt=key.salt,
                    encrypted_token=build_verifier(key, self._settings.cipher_backend),
                    is_initialized=True,
                )
                self._store.save(config)
            except BaseException:
                key.wipe()
                raise
            self._config = config
            self._replace_key(key)
            logger.info("Master password initialized, vault unlocked")
            return key

    def unlock(self, password: str) -> DerivedKey:
        """Verify ``password`` and hold the derived key.

        Re-entrant: unlocking an unlocked vault replaces the live key.
        On failure the state and stored configuration are left untouched.

        Raises:
            NotInitialized: If no master password has been set up.
            InvalidPassword: If the password is wrong.
        """
        with self._lock.write():
            key = self._check_password(password)
            self._replace_key(key)
            logger.info("Vault unlocked")
            return key

    verify = unlock

    def lock(self) -> None:
        """Wipe and drop the live key. Idempotent."""
        with self._lock.write():
            if self._key is not None:
                self._replace_key(None)
                logger.info("Vault locked")

    def change_master_password(
        self,
        old_password: str,
        new_password: str,
        rekey: Optional[RekeyCallback] = None,
    ) -> DerivedKey:
        """Replace the master password with a new salt, key and verifier.

        Existing entries are not re-encrypted. If ``rekey`` is given it is
        called as ``rekey(old_key, new_key)`` after the old password is
        verified and before anything is persisted; if it raises, the change
        is abandoned and the previous configuration and live key remain.
        The callback runs while the manager is held for writing, so it must
        work with the two keys it is given. Calling back into this manager
        (``encrypt``, ``decrypt``, ``state`` and so on) raises RuntimeError.

        Returns:
            The new live key.

        Raises:
            NotInitialized: If no master password has been set up.
            InvalidPassword: If ``old_password`` is wrong.
            EmptyInput: If ``new_password`` is empty.
            ConfigurationIOError: If the configuration cannot be saved.
        """
        if not new_password:
            raise EmptyInput("master password cannot be empty")
        with self._lock.write():
            old_key = self._check_password(old_password)
            try:
                new_key = self._derive(new_password)
                try:
                    config = MasterPasswordConfig(
                        salt=new_key.salt,
                        encrypted_token=build_verifier(
                            new_key, self._settings.cipher_backend,
                        ),
                        is_initialized=True,
                    )
                    if rekey is not None:
                        rekey(old_key, new_key)
                    self._store.save(config)
                except BaseException:
                    new_key.wipe()
                    raise
            finally:
                old_key.wipe()
            self._config = config
            self._replace_key(new_key)
            logger.info("Master password changed, previous key discarded")
            return new_key

    def reset(self) -> None:
        """Erase the configuration and the live key without any password.

        All previously sealed data becomes permanently unrecoverable.

        Raises:
            ConfigurationIOError: If the configuration file cannot be removed.
        """
        with self._lock.write():
            try:
                self._store.delete()
            finally:
                self._replace_key(None)
            self._config = None
            logger.warning("Master password configuration reset")

    # ------------------------------------------------------------------
    # Key use
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: Union[str, bytes]) -> bytes:
        """Seal a value under the live key.

        Raises:
            VaultLocked: If the vault is locked.
            EmptyInput: If the value is empty.
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        with self._lock.read():
            return seal(self._require_key(), plaintext, self._settings.cipher_backend)

    def decrypt(self, blob: bytes) -> bytes:
        """Open an envelope under the live key.

        Raises:
            VaultLocked: If the vault is locked.
            MalformedCiphertext: If the envelope is truncated.
            AuthenticationFailure: If the envelope does not authenticate.
        """
        with self._lock.read():
            return open_envelope(
                self._require_key(), blob, self._settings.cipher_backend,
            )

    def decrypt_text(self, blob: bytes) -> str:
        return self.decrypt(blob).decode("utf-8")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.lock()

    def __enter__(self) -> "MasterPasswordManager":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
