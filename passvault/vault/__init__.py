"""Vault core — Master password authentication and credential encryption.

Security Note (Threat Model):
    The derived key is held in process memory while the vault is unlocked,
    and decrypted values exist in memory while in use. A memory dump of the
    unlocked process could expose them; protecting against that needs
    secure enclave support, which this package does not provide.
"""

from .crypto import (
    DerivedKey,
    derive_key,
    generate_salt,
    seal,
    open_envelope,
    open_into,
    wipe_buffer,
    encrypt_text,
    decrypt_text,
)
from .verification import VERIFICATION_TOKEN, build_verifier, verify
from .config import VaultSettings, config_dir, default_config_path
from .store import (
    ConfigStore,
    FileConfigStore,
    MemoryConfigStore,
    MasterPasswordConfig,
)
from .master import MasterPasswordManager, VaultState
from .rekey import reencrypt_entries
from .session import VaultSession

__all__ = [
    "DerivedKey",
    "derive_key",
    "generate_salt",
    "seal",
    "open_envelope",
    "open_into",
    "wipe_buffer",
    "encrypt_text",
    "decrypt_text",
    "VERIFICATION_TOKEN",
    "build_verifier",
    "verify",
    "VaultSettings",
    "config_dir",
    "default_config_path",
    "ConfigStore",
    "FileConfigStore",
    "MemoryConfigStore",
    "MasterPasswordConfig",
    "MasterPasswordManager",
    "VaultState",
    "reencrypt_entries",
    "VaultSession",
]
