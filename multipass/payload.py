"""
payload.py - the customer identity payload embedded in a Multipass token.

Shopify decodes the token and reads exactly three keys:

    {"email": ..., "created_at": ..., "return_to": ...}

The keys are snake_case and appear in that order. `created_at` is used by
Shopify to reject stale tokens, so a payload is built fresh for every login
and never reused.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .errors import InvalidPayload

# Loose "local@domain.tld" check, the same shape Flask stores usually accept.
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ACCOUNT_PATH = "/account"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """
    Format an instant as ISO-8601 UTC with milliseconds and a `Z` suffix.

    Example: 2024-01-01T00:00:00.000Z

    Arguments:
        now: instant to format; naive values are taken as UTC.
             Defaults to the current time.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_email(email) -> str:
    """
    Return the trimmed email, or raise InvalidPayload.

    Raises:
        InvalidPayload: email is None, not a string, empty, or not shaped like an address.
    """
    if not isinstance(email, str) or not email.strip():
        raise InvalidPayload("Email is required")
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise InvalidPayload(f"Invalid email format: {email!r}")
    return email


@dataclass(frozen=True)
class CustomerIdentityPayload:
    email: str
    created_at: str
    return_to: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", validate_email(self.email))
        if not self.created_at:
            raise InvalidPayload("created_at is required")
        if not self.return_to:
            raise InvalidPayload("return_to is required")

    @classmethod
    def for_customer(
        cls,
        email: str,
        storefront_url: str,
        now: Optional[datetime] = None,
    ) -> "CustomerIdentityPayload":
        """Build the payload for one login: fresh timestamp, landing on /account."""
        return cls(
            email=validate_email(email),
            created_at=utc_timestamp(now),
            return_to=storefront_url.rstrip("/") + ACCOUNT_PATH,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "email": self.email,
            "created_at": self.created_at,
            "return_to": self.return_to,
        }

    def to_json(self) -> bytes:
        """Compact UTF-8 JSON, byte-for-byte what a JavaScript JSON.stringify emits."""
        text = json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidPayload("Payload is not valid UTF-8 text") from e
