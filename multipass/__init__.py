"""
multipass package
=================

Shopify Multipass token generation: turns a verified customer's email into
a one-time URL that logs them into the storefront without a password.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- Key: SHA-256(secret), first 16 bytes. Used for both AES and HMAC.
- Encrypt: AES-128-CBC, random 16-byte IV, PKCS7 padding, base64.
- Sign: HMAC-SHA256 over the base64 ciphertext string, base64.
- Token: base64(cipherText + "--" + signature).
- URL: <store>/account/login/multipass/<encodeURIComponent(token)>

──────────────────────────────────────────────
Quick usage
──────────────────────────────────────────────
>>> from multipass import MultipassTokenGenerator
>>> gen = MultipassTokenGenerator("shared-secret", "https://shop.example.com")
>>> result = gen.generate_for_email("alice@example.com")
>>> result.url.startswith("https://shop.example.com/account/login/multipass/")
True
"""

from .errors import ConfigurationError, CryptoFailure, InvalidPayload, MultipassError
from .payload import CustomerIdentityPayload, utc_timestamp, validate_email
from .token import (
    DerivedKeyMaterial,
    MultipassToken,
    MultipassTokenGenerator,
    decode_token,
    derive_keys,
    generate_token,
    verify_signature,
)

__all__ = [
    "ConfigurationError",
    "CryptoFailure",
    "CustomerIdentityPayload",
    "DerivedKeyMaterial",
    "InvalidPayload",
    "MultipassError",
    "MultipassToken",
    "MultipassTokenGenerator",
    "decode_token",
    "derive_keys",
    "generate_token",
    "utc_timestamp",
    "validate_email",
    "verify_signature",
]
