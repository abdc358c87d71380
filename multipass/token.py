"""
token.py - Shopify Multipass token generation (and the inverse, for checks).

Goal:
- Pure functions that the Flask relay and the CLI can call directly.
- No I/O, no shared state: the only outside input is os.urandom for the IV.

Algorithm (Shopify reverses every step, so every byte matters):

    key        = SHA256(secret)[:16]             # AES-128 key AND HMAC key
    iv         = os.urandom(16)                  # fresh for each token
    cipherText = base64(AES-128-CBC(key, iv, PKCS7(json)))
    signature  = base64(HMAC-SHA256(key, cipherText))   # over the base64 text
    token      = base64(cipherText + "--" + signature)
    url        = <store>/account/login/multipass/<percent-encoded token>

Security notes:
- Encryption and signing share one key. Shopify's decoder expects exactly
  that; do not split it into two keys.
- The IV must come from a CSPRNG. os.urandom is used, never `random`.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
from dataclasses import dataclass
from typing import Optional, Tuple, Union
from urllib.parse import quote

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigurationError, CryptoFailure
from .payload import CustomerIdentityPayload

# --- Config / constants ----------------------------------------------------
KEY_BYTES = 16              # AES-128
IV_BYTES = 16               # one AES block
BLOCK_BITS = 128            # PKCS7 block size
SEPARATOR = "--"
LOGIN_PATH = "/account/login/multipass/"
URI_SAFE = "-_.!~*'()"      # left unescaped by encodeURIComponent

Secret = Union[str, bytes]


@dataclass(frozen=True)
class DerivedKeyMaterial:
    encryption_key: bytes
    signing_key: bytes


@dataclass(frozen=True)
class MultipassToken:
    token: str
    url: str


# --- Key derivation --------------------------------------------------------
def _secret_bytes(secret: Optional[Secret]) -> bytes:
    if not isinstance(secret, (str, bytes, bytearray)) or len(secret) == 0:
        raise ConfigurationError("Multipass secret is not configured")
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return bytes(secret)


def derive_keys(secret: Optional[Secret]) -> DerivedKeyMaterial:
    """
    Derive the AES key and the HMAC key from the shared secret.

    Both are the first 16 bytes of SHA-256(secret), so they are equal.

    Raises:
        ConfigurationError: secret is None or empty.
    """
    raw = _secret_bytes(secret)
    encryption_key = hashlib.sha256(raw).digest()[:KEY_BYTES]
    signing_key = hashlib.sha256(raw).digest()[:KEY_BYTES]
    return DerivedKeyMaterial(encryption_key=encryption_key, signing_key=signing_key)


def _random_iv() -> bytes:
    return os.urandom(IV_BYTES)


# --- Encryption / signing --------------------------------------------------
def encrypt_payload(plaintext: bytes, key: bytes, iv: bytes) -> str:
    """
    AES-128-CBC encrypt `plaintext` with PKCS7 padding and return base64 text.

    Raises:
        CryptoFailure: IV is not 16 bytes, key has the wrong length, or the
                       cipher backend fails.
    """
    if len(iv) != IV_BYTES:
        raise CryptoFailure(f"IV must be {IV_BYTES} bytes, got {len(iv)}")
    try:
        padder = padding.PKCS7(BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        raw = encryptor.update(padded) + encryptor.finalize()
    except (TypeError, ValueError) as e:
        raise CryptoFailure("AES-128-CBC encryption failed") from e
    return base64.b64encode(raw).decode("ascii")


def decrypt_cipher_text(cipher_text: str, key: bytes, iv: bytes) -> bytes:
    """Inverse of encrypt_payload. Returns the unpadded plaintext bytes."""
    if len(iv) != IV_BYTES:
        raise CryptoFailure(f"IV must be {IV_BYTES} bytes, got {len(iv)}")
    try:
        raw = base64.b64decode(cipher_text, validate=True)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except (binascii.Error, TypeError, ValueError) as e:
        raise CryptoFailure("AES-128-CBC decryption failed") from e


def sign(cipher_text: str, key: bytes) -> str:
    """HMAC-SHA256 over the base64 cipherText string (not the raw bytes), base64-encoded."""
    try:
        digest = hmac.new(key, cipher_text.encode("ascii"), hashlib.sha256).digest()
    except (TypeError, ValueError) as e:
        raise CryptoFailure("HMAC-SHA256 signing failed") from e
    return base64.b64encode(digest).decode("ascii")


def assemble_token(cipher_text: str, signature: str) -> str:
    """Second base64 pass over `cipherText--signature`."""
    joined = cipher_text + SEPARATOR + signature
    return base64.b64encode(joined.encode("ascii")).decode("ascii")


def split_token(token: str) -> Tuple[str, str]:
    """
    Undo assemble_token: return (cipherText, signature).

    Standard base64 never contains '-', so a well-formed token holds exactly
    one separator.

    Raises:
        CryptoFailure: token is not base64 or does not split into two parts.
    """
    try:
        joined = base64.b64decode(token, validate=True).decode("ascii")
    except (binascii.Error, TypeError, ValueError) as e:
        raise CryptoFailure("Multipass token is not valid base64") from e
    parts = joined.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise CryptoFailure("Multipass token must contain exactly one '--' separator")
    return parts[0], parts[1]


def build_login_url(storefront_url: str, token: str) -> str:
    """Append the percent-encoded token to the storefront's multipass login path."""
    return storefront_url.rstrip("/") + LOGIN_PATH + quote(token, safe=URI_SAFE)


# --- Public entry points ---------------------------------------------------
def generate_token(
    payload: CustomerIdentityPayload,
    secret: Secret,
    storefront_url: str,
) -> MultipassToken:
    """
    Encrypt, sign and encode `payload` into a single-use Multipass login token.

    Steps:
    1. Canonical JSON of the payload (email, created_at, return_to)
    2. Derive the 16-byte key from SHA-256(secret)
    3. Draw a random 16-byte IV
    4. AES-128-CBC + PKCS7, base64 -> cipherText
    5. HMAC-SHA256(cipherText), base64 -> signature
    6. base64(cipherText + "--" + signature) -> token
    7. storefront URL + /account/login/multipass/ + encoded token -> url

    Arguments:
        payload: a validated CustomerIdentityPayload
        secret: the store's Multipass secret (str or bytes)
        storefront_url: e.g. "https://shop.example.com"

    Returns:
        MultipassToken(token, url)

    Raises:
        ConfigurationError: secret is empty
        CryptoFailure: any cipher / HMAC step failed (no partial token is returned)
    """
    keys = derive_keys(secret)
    plaintext = payload.to_json()
    cipher_text = encrypt_payload(plaintext, keys.encryption_key, _random_iv())
    signature = sign(cipher_text, keys.signing_key)
    token = assemble_token(cipher_text, signature)
    return MultipassToken(token=token, url=build_login_url(storefront_url, token))


def verify_signature(token: str, secret: Secret) -> bool:
    """
    Check the HMAC embedded in a token against the shared secret.

    Does not need the IV. Returns False on a signature mismatch; raises
    CryptoFailure if the token cannot be split at all.
    """
    cipher_text, signature = split_token(token)
    expected = sign(cipher_text, derive_keys(secret).signing_key)
    return hmac.compare_digest(expected, signature)


def decode_token(token: str, secret: Secret, iv: bytes) -> dict:
    """
    Verify and decrypt a token back into its payload dict.

    The IV is not carried inside the token, so the caller must supply the one
    used at encryption time.

    Raises:
        CryptoFailure: bad encoding, signature mismatch, wrong IV/padding or
                       undecodable JSON.
    """
    if not verify_signature(token, secret):
        raise CryptoFailure("Multipass signature mismatch")
    cipher_text, _ = split_token(token)
    plaintext = decrypt_cipher_text(cipher_text, derive_keys(secret).encryption_key, iv)
    try:
        return json.loads(plaintext.decode("utf-8"))
    except ValueError as e:
        raise CryptoFailure("Decrypted Multipass payload is not JSON") from e


class MultipassTokenGenerator:
    """
    Stateless generator bound to one store's configuration.

    Holds the secret and storefront URL only; keys are derived per call and
    every call draws its own IV, so one instance can be shared across
    concurrent requests.
    """

    def __init__(self, secret: Optional[Secret], storefront_url: Optional[str]) -> None:
        self._secret = _secret_bytes(secret)
        if not storefront_url:
            raise ConfigurationError("Storefront URL is not configured")
        self.storefront_url = storefront_url.rstrip("/")

    def payload_for(self, email: str) -> CustomerIdentityPayload:
        return CustomerIdentityPayload.for_customer(email, self.storefront_url)

    def generate(self, payload: CustomerIdentityPayload) -> MultipassToken:
        return generate_token(payload, self._secret, self.storefront_url)

    def generate_for_email(self, email: str) -> MultipassToken:
        """Build a fresh payload for `email` and turn it into a login token."""
        return self.generate(self.payload_for(email))
