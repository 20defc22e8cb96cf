"""Passvault.

Local, single-user credential vault protected by a master password.
"""
from .version import __version__
from .exceptions import VaultError
from .vault import MasterPasswordManager, VaultSession, VaultSettings, VaultState

__all__ = (
    "__version__",
    "VaultError",
    "MasterPasswordManager",
    "VaultSession",
    "VaultSettings",
    "VaultState",
)
