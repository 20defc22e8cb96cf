"""
Vault Configuration — Settings and config file location.

Reads settings from environment variables:
    PASSVAULT_CONFIG_PATH = <path to the master password config file>
    PASSVAULT_KDF_ITERATIONS = <integer, at least MIN_ITERATIONS>
    PASSVAULT_CIPHER_BACKEND = aesgcm | chacha20

The config file lives under ``$XDG_CONFIG_HOME/passvault`` (or
``~/.config/passvault``) unless overridden.

Security Note:
    Never log key material or passwords. Only log paths and settings.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .crypto import CIPHERS, DEFAULT_ITERATIONS, MIN_ITERATIONS

logger = logging.getLogger("passvault.vault")

APP_NAME = "passvault"
CONFIG_FILENAME = "config"


def config_dir() -> Path:
    """Return XDG_CONFIG_HOME/passvault or ~/.config/passvault."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def default_config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


def ensure_config_dir(path: Path) -> Path:
    """Create the directory holding ``path`` with owner-only permissions.

    Returns:
        The directory.
    """
    directory = Path(path).parent
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)
    return directory


class VaultSettings(BaseModel):
    """Validated vault settings."""

    config_path: Path = Field(default_factory=default_config_path)
    kdf_iterations: int = Field(default=DEFAULT_ITERATIONS, ge=MIN_ITERATIONS)
    cipher_backend: str = Field(default="aesgcm")

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultSettings":
        """Create VaultSettings by loading values from environment.

        Returns:
            Populated VaultSettings instance.
        """
        values = {}
        config_path = os.environ.get("PASSVAULT_CONFIG_PATH")
        if config_path:
            values["config_path"] = Path(config_path).expanduser()
        iterations = os.environ.get("PASSVAULT_KDF_ITERATIONS")
        if iterations:
            values["kdf_iterations"] = iterations
        backend = os.environ.get("PASSVAULT_CIPHER_BACKEND")
        if backend:
            values["cipher_backend"] = backend
        settings = cls(**values)
        logger.debug(
            "Vault settings: config_path=%s kdf_iterations=%d cipher=%s",
            settings.config_path, settings.kdf_iterations,
            settings.cipher_backend,
        )
        return settings
