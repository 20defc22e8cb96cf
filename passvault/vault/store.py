"""
Master password configuration record and its persistence.

The record is a single line::

    <salt hex>:<encrypted token hex>:<true|false>

``:`` can never appear in hex output, so splitting on it is unambiguous.

Security Note:
    The record holds no secret: the salt is public and the token is only
    useful to someone who already knows the password. The file is still
    written owner-only (0600) and replaced atomically.
"""
import os
import re
import logging
import tempfile
import contextlib
from pathlib import Path
from typing import Optional, Protocol, Union

from pydantic import BaseModel, ValidationError, model_validator

from ..exceptions import ConfigurationIOError, MalformedConfiguration
from .config import ensure_config_dir
from .crypto import NONCE_SIZE, SALT_SIZE, TAG_SIZE

logger = logging.getLogger("passvault.vault")

_FIELD_SEPARATOR = ":"
_HEX_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})*\Z")
_FLAGS = {"true": True, "false": False}


class MasterPasswordConfig(BaseModel):
    """Persisted master password state: salt, encrypted token, initialized flag."""

    salt: bytes = b""
    encrypted_token: bytes = b""
    is_initialized: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_initialized_fields(self) -> "MasterPasswordConfig":
        """An initialized record must carry a full salt and a sealed token."""
        if self.is_initialized:
            if len(self.salt) != SALT_SIZE:
                raise ValueError(
                    f"salt must be {SALT_SIZE} bytes, got {len(self.salt)}"
                )
            if len(self.encrypted_token) <= NONCE_SIZE + TAG_SIZE:
                raise ValueError(
                    f"encrypted token too short: {len(self.encrypted_token)} bytes"
                )
        return self

    def dumps(self) -> str:
        """Serialize to the single-line record format."""
        flag = "true" if self.is_initialized else "false"
        return _FIELD_SEPARATOR.join(
            (self.salt.hex(), self.encrypted_token.hex(), flag)
        )

    @classmethod
    def loads(cls, data: str) -> "MasterPasswordConfig":
        """Parse a record produced by :meth:`dumps`.

        Raises:
            MalformedConfiguration: On any deviation from the format.
        """
        parts = data.strip().split(_FIELD_SEPARATOR)
        if len(parts) != 3:
            raise MalformedConfiguration(
                f"Invalid config format: expected 3 fields, got {len(parts)}"
            )
        salt_hex, token_hex, flag = parts
        for name, value in (("salt", salt_hex), ("encrypted token", token_hex)):
            if not _HEX_PATTERN.fullmatch(value):
                raise MalformedConfiguration(f"Invalid config format: {name} is not hex")
        if flag not in _FLAGS:
            raise MalformedConfiguration(
                f"Invalid config format: unknown initialized flag {flag!r}"
            )
        try:
            return cls(
                salt=bytes.fromhex(salt_hex),
                encrypted_token=bytes.fromhex(token_hex),
                is_initialized=_FLAGS[flag],
            )
        except ValidationError as err:
            raise MalformedConfiguration(f"Invalid config: {err}") from err


class ConfigStore(Protocol):
    """Persistence collaborator for the master password configuration."""

    def load(self) -> Optional[MasterPasswordConfig]:
        ...

    def save(self, config: MasterPasswordConfig) -> None:
        ...

    def delete(self) -> None:
        ...


class FileConfigStore:
    """Stores the configuration record in a single owner-only file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"<FileConfigStore path={str(self.path)!r}>"

    def load(self) -> Optional[MasterPasswordConfig]:
        """Read the configuration.

        Returns:
            The parsed record, or None if the file does not exist.

        Raises:
            ConfigurationIOError: If the file exists but cannot be read.
            MalformedConfiguration: If the file cannot be parsed.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No vault config at %s", self.path)
            return None
        except OSError as err:
            raise ConfigurationIOError(
                f"Failed to read config file {self.path}: {err}"
            ) from err
        try:
            data = raw.decode("ascii")
        except UnicodeDecodeError as err:
            raise MalformedConfiguration(
                f"Config file {self.path} is not ASCII text"
            ) from err
        config = MasterPasswordConfig.loads(data)
        logger.debug("Loaded vault config from %s", self.path)
        return config

    def save(self, config: MasterPasswordConfig) -> None:
        """Atomically replace the configuration file (mode 0600).

        Raises:
            ConfigurationIOError: On any filesystem failure.
        """
        try:
            directory = ensure_config_dir(self.path)
            # mkstemp creates the file with mode 0600
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory,
            )
            try:
                with os.fdopen(fd, "w", encoding="ascii") as f:
                    f.write(config.dumps())
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
                raise
        except OSError as err:
            raise ConfigurationIOError(
                f"Failed to write config file {self.path}: {err}"
            ) from err
        logger.debug("Saved vault config to %s", self.path)

    def delete(self) -> None:
        """Remove the configuration file. Missing file is not an error.

        Raises:
            ConfigurationIOError: If the file exists but cannot be removed.
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as err:
            raise ConfigurationIOError(
                f"Failed to remove config file {self.path}: {err}"
            ) from err
        logger.debug("Removed vault config %s", self.path)


class MemoryConfigStore:
    """Keeps the serialized record in memory. Used for tests and embedding."""

    def __init__(self, data: Optional[str] = None):
        self.data = data

    def load(self) -> Optional[MasterPasswordConfig]:
        if self.data is None:
            return None
        return MasterPasswordConfig.loads(self.data)

    def save(self, config: MasterPasswordConfig) -> None:
        self.data = config.dumps()

    def delete(self) -> None:
        self.data = None
