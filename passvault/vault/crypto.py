"""
Vault Crypto Core — Password key derivation and authenticated encryption.

- Key derivation: PBKDF2-HMAC-SHA256(password, salt) → 32-byte key
- Sealing: AES-GCM (or ChaCha20-Poly1305) → [nonce 12B][payload + tag 16B]

Security Note:
    Never log passwords, key material, plaintext or ciphertext values.
    Nonces are random 96-bit values drawn per call; no counters are used.
    Key material is derived straight into a ``bytearray`` that is zeroed by
    ``wipe()``. ``open_into`` decrypts into a ``bytearray`` the caller zeroes
    with ``wipe_buffer``; ``open_envelope`` returns immutable ``bytes`` and is
    meant for values handed on to the caller.
"""
import os
import hmac
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import (
    AuthenticationFailure,
    EmptyInput,
    MalformedCiphertext,
    RandomSourceError,
)

logger = logging.getLogger("passvault.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM / Poly1305 tag
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 32

# OWASP 2023 recommendation for PBKDF2-HMAC-SHA256.
DEFAULT_ITERATIONS = 600_000
MIN_ITERATIONS = 10_000

CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def _get_cipher_cls() -> type:
    """Return the AEAD cipher class based on PASSVAULT_CIPHER_BACKEND env var.

    Raises:
        ValueError: If the env var names an unsupported backend.
    """
    backend = os.environ.get("PASSVAULT_CIPHER_BACKEND", "aesgcm").lower()
    try:
        return CIPHERS[backend]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


# Resolve cipher once at module load to prevent seal/open mismatch
# if the env var changes mid-process.
CIPHER_CLS = _get_cipher_cls()


def _random_bytes(size: int) -> bytes:
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as err:
        raise RandomSourceError(
            f"System random source unavailable: {err}"
        ) from err


def wipe_buffer(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

class DerivedKey:
    """A symmetric key derived from the master password.

    The key bytes are kept in a private ``bytearray`` and overwritten with
    zeros by :meth:`wipe`, when used as a context manager, or when the object
    is garbage collected. A wiped key can no longer seal or open envelopes.
    """

    __slots__ = ("_material", "_salt", "_wiped")

    def __init__(self, material: bytearray, salt: bytes):
        if len(material) != KEY_LENGTH:
            raise ValueError(
                f"Derived key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(material)}"
            )
        self._material = material
        self._salt = bytes(salt)
        self._wiped = False

    @property
    def salt(self) -> bytes:
        return self._salt

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    def material(self) -> bytearray:
        """Return the live key buffer (not a copy).

        Raises:
            ValueError: If the key has already been wiped.
        """
        if self._wiped:
            raise ValueError("Derived key has been wiped")
        return self._material

    def wipe(self) -> None:
        """Zero the key material. Idempotent."""
        if not self._wiped:
            wipe_buffer(self._material)
            self._wiped = True

    def __enter__(self) -> "DerivedKey":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __del__(self):
        # attributes may be missing if __init__ raised
        if getattr(self, "_wiped", True) is False:
            self.wipe()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DerivedKey):
            return NotImplemented
        if self._wiped or other._wiped:
            return False
        return (
            hmac.compare_digest(self._material, other._material)
            and self._salt == other._salt
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else "live"
        return f"<DerivedKey {state} salt={self._salt[:4].hex()}…>"


def generate_salt() -> bytes:
    """Generate a new random vault salt.

    Raises:
        RandomSourceError: If the system random source is unavailable.
    """
    return _random_bytes(SALT_SIZE)


def derive_key(
    password: str,
    salt: Optional[bytes] = None,
    iterations: int = DEFAULT_ITERATIONS,
) -> DerivedKey:
    """Derive a 32-byte key from a password using PBKDF2-HMAC-SHA256.

    Args:
        password: Master password.
        salt: Vault salt. A fresh random salt is generated when omitted
            (first-time setup only).
        iterations: PBKDF2 iteration count, at least ``MIN_ITERATIONS``.

    Returns:
        DerivedKey holding the key and the salt it was derived from.

    Raises:
        ValueError: If the salt has the wrong size or iterations is too low.
        RandomSourceError: If a new salt could not be generated.
    """
    if iterations < MIN_ITERATIONS:
        raise ValueError(
            f"PBKDF2 iterations must be at least {MIN_ITERATIONS}, "
            f"got {iterations}"
        )
    if salt is None:
        salt = generate_salt()
    elif len(salt) != SALT_SIZE:
        raise ValueError(
            f"Salt must be exactly {SALT_SIZE} bytes, got {len(salt)}"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    material = bytearray(KEY_LENGTH)
    secret = bytearray(password, "utf-8")
    try:
        kdf.derive_into(secret, material)
    finally:
        wipe_buffer(secret)
    return DerivedKey(material, salt)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def _cipher(key: DerivedKey, backend: Optional[str]):
    cipher_cls = CIPHER_CLS if backend is None else CIPHERS[backend]
    return cipher_cls(key.material())


def _split_envelope(envelope: Optional[bytes]) -> tuple[bytes, bytes]:
    _min = NONCE_SIZE + TAG_SIZE
    if envelope is None or len(envelope) < _min:
        size = 0 if envelope is None else len(envelope)
        raise MalformedCiphertext(
            f"Ciphertext too short: {size} bytes (minimum {_min})"
        )
    return envelope[:NONCE_SIZE], envelope[NONCE_SIZE:]


def seal(
    key: DerivedKey,
    plaintext: bytes,
    backend: Optional[str] = None,
) -> bytes:
    """Encrypt and authenticate a payload.

    Format: [nonce 12B][encrypted_payload + tag 16B]

    Args:
        key: Derived key to seal under.
        plaintext: Non-empty payload.
        backend: Cipher backend name; defaults to the process-wide backend.

    Returns:
        Envelope bytes.

    Raises:
        EmptyInput: If plaintext is empty.
    """
    if not plaintext:
        raise EmptyInput("Cannot encrypt an empty value")
    cipher = _cipher(key, backend)
    nonce = _random_bytes(NONCE_SIZE)
    return nonce + cipher.encrypt(nonce, plaintext, None)


def open_envelope(
    key: DerivedKey,
    envelope: bytes,
    backend: Optional[str] = None,
) -> bytes:
    """Verify and decrypt an envelope produced by :func:`seal`.

    Args:
        key: Derived key the envelope was sealed under.
        envelope: Bytes in format [nonce 12B][payload+tag].
        backend: Cipher backend name; defaults to the process-wide backend.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        MalformedCiphertext: If the envelope cannot hold a nonce and a tag.
        AuthenticationFailure: If the tag does not verify.
    """
    nonce, ct = _split_envelope(envelope)
    cipher = _cipher(key, backend)
    try:
        return cipher.decrypt(nonce, ct, None)
    except InvalidTag:
        raise AuthenticationFailure("Ciphertext failed authentication") from None


def open_into(
    key: DerivedKey,
    envelope: bytes,
    backend: Optional[str] = None,
) -> bytearray:
    """Like :func:`open_envelope`, but decrypt into a fresh ``bytearray``.

    The caller owns the returned buffer and must zero it with
    :func:`wipe_buffer` once done. Nothing is left behind on failure.
    """
    nonce, ct = _split_envelope(envelope)
    cipher = _cipher(key, backend)
    buffer = bytearray(len(ct) - TAG_SIZE)
    try:
        cipher.decrypt_into(nonce, ct, None, buffer)
    except InvalidTag:
        wipe_buffer(buffer)
        raise AuthenticationFailure("Ciphertext failed authentication") from None
    return buffer


def encrypt_text(key: DerivedKey, text: str, backend: Optional[str] = None) -> bytes:
    """Seal a UTF-8 string."""
    return seal(key, text.encode("utf-8"), backend)


def decrypt_text(key: DerivedKey, envelope: bytes, backend: Optional[str] = None) -> str:
    """Open an envelope holding a UTF-8 string."""
    return open_envelope(key, envelope, backend).decode("utf-8")
