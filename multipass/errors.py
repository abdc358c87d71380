"""
Exceptions raised while building or reading Multipass tokens.

All three are terminal for the current request: nothing here is retried.
The HTTP layer decides which status code each one maps to.
"""


class MultipassError(Exception):
    """Base class for every Multipass failure."""


class InvalidPayload(MultipassError, ValueError):
    """The customer identity payload is missing a field or has a malformed email."""


class ConfigurationError(MultipassError):
    """The shared secret or storefront URL is empty or absent."""


class CryptoFailure(MultipassError):
    """Key derivation, AES, HMAC or token decoding could not complete."""
