"""
Shared pytest fixtures for the passvault test suite.

PBKDF2 runs at the minimum allowed iteration count so the suite stays fast;
production defaults are exercised only where a test asks for them.
"""
import pytest

from passvault.vault import crypto, rekey, verification
from passvault.vault.config import VaultSettings
from passvault.vault.crypto import MIN_ITERATIONS, derive_key
from passvault.vault.master import MasterPasswordManager
from passvault.vault.store import FileConfigStore, MemoryConfigStore


@pytest.fixture(autouse=True)
def _isolate_config_home(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.config/passvault."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("PASSVAULT_CONFIG_PATH", raising=False)
    monkeypatch.delenv("PASSVAULT_KDF_ITERATIONS", raising=False)
    monkeypatch.delenv("PASSVAULT_CIPHER_BACKEND", raising=False)


@pytest.fixture
def settings(tmp_path):
    """Fast settings pointing at a temp config file."""
    return VaultSettings(
        config_path=tmp_path / "passvault" / "config",
        kdf_iterations=MIN_ITERATIONS,
    )


@pytest.fixture
def memory_store():
    return MemoryConfigStore()


@pytest.fixture
def file_store(settings):
    return FileConfigStore(settings.config_path)


@pytest.fixture
def manager(memory_store, settings):
    """Uninitialized manager on an in-memory store."""
    return MasterPasswordManager(memory_store, settings)


@pytest.fixture
def key():
    """A live derived key with a random salt."""
    k = derive_key("correct-horse", iterations=MIN_ITERATIONS)
    yield k
    k.wipe()


@pytest.fixture
def other_key():
    k = derive_key("battery-staple", iterations=MIN_ITERATIONS)
    yield k
    k.wipe()


@pytest.fixture
def wiped_buffers(monkeypatch):
    """Record every buffer zeroed through ``crypto.wipe_buffer``."""
    real = crypto.wipe_buffer
    buffers = []

    def recording(buffer):
        real(buffer)
        buffers.append(buffer)

    monkeypatch.setattr(crypto, "wipe_buffer", recording)
    return buffers


@pytest.fixture
def opened_buffers(monkeypatch):
    """Record every plaintext buffer handed out by ``open_into``."""
    real = crypto.open_into
    buffers = []

    def recording(*args, **kwargs):
        buffer = real(*args, **kwargs)
        buffers.append(buffer)
        return buffer

    monkeypatch.setattr(rekey, "open_into", recording)
    monkeypatch.setattr(verification, "open_into", recording)
    return buffers
