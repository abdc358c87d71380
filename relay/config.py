"""
Process configuration for the relay.

Read once at start-up from the environment (after loading a .env file) into
a frozen Settings object, then handed to create_app. Nothing mutates it
afterwards.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_API_VERSION = "2023-10"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = 10.0


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


@dataclass(frozen=True)
class Settings:
    otpless_client_id: str = ""
    otpless_client_secret: str = ""
    shopify_store_url: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = DEFAULT_API_VERSION
    multipass_secret: Optional[str] = None
    cors_origin: str = "*"
    port: int = DEFAULT_PORT
    request_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    @property
    def multipass_enabled(self) -> bool:
        return bool(self.multipass_secret)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build Settings from environment variables.

        When `environ` is None the process environment is used, after
        load_dotenv() has filled in anything from a local .env file.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        store_url = _clean(environ.get("SHOPIFY_STORE_URL")).rstrip("/")
        return cls(
            otpless_client_id=_clean(environ.get("OTPLESS_CLIENT_ID")),
            otpless_client_secret=_clean(environ.get("OTPLESS_CLIENT_SECRET")),
            shopify_store_url=store_url,
            shopify_access_token=_clean(environ.get("SHOPIFY_ACCESS_TOKEN")),
            shopify_api_version=_clean(environ.get("SHOPIFY_API_VERSION")) or DEFAULT_API_VERSION,
            multipass_secret=environ.get("SHOPIFY_MULTIPASS_SECRET") or None,
            cors_origin=_clean(environ.get("CORS_ORIGIN")) or store_url or "*",
            port=int(environ.get("PORT") or DEFAULT_PORT),
            request_timeout=float(environ.get("UPSTREAM_TIMEOUT") or DEFAULT_TIMEOUT),
            log_level=_clean(environ.get("LOG_LEVEL")).upper() or "INFO",
        )
