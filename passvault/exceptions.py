"""Vault exceptions.

Every failure raised by the vault core derives from :class:`VaultError`, so
embedding code can catch the whole family in one place, while each outcome
keeps its own type.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


# Configuration persistence

class ConfigurationIOError(VaultError):
    """The master password configuration could not be read or written."""


class MalformedConfiguration(VaultError, ValueError):
    """An existing configuration file could not be parsed.

    Never repaired or reset automatically.
    """


# State preconditions

class AlreadyInitialized(VaultError):
    """A master password has already been set up."""


class NotInitialized(VaultError):
    """No master password has been set up yet."""


class VaultLocked(VaultError):
    """An operation needed the live key but the vault is locked."""


# Password outcomes

class PasswordMismatch(VaultError):
    """Password and confirmation do not match."""


class InvalidPassword(VaultError):
    """The master password is not correct."""


# Cipher layer

class CipherError(VaultError):
    """Base class for authenticated cipher failures."""


class EmptyInput(CipherError, ValueError):
    """An empty value was given where a secret is required."""


class MalformedCiphertext(CipherError, ValueError):
    """The envelope is too short to hold a nonce and a tag."""


class AuthenticationFailure(CipherError):
    """The envelope did not authenticate under the given key."""


class RandomSourceError(VaultError):
    """The system random source is unavailable. Fatal."""
