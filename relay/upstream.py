"""
HTTP clients for the two services the relay talks to.

- OTPless: verifies the one-time token the browser got from the OTPless widget.
- Shopify Admin API: finds or creates the customer record.

Both are thin wrappers over a requests.Session. There is no retry logic; a
failed call surfaces as UpstreamError and the request fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

OTPLESS_VERIFY_URL = "https://api.otpless.com/api/v1/token/verify"


class UpstreamError(Exception):
    """An OTPless or Shopify call failed in transport or returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body or {}


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    claims: Dict[str, Any] = field(default_factory=dict)
    status_code: int = 200


def _json_body(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class OtplessClient:
    """Calls OTPless `token/verify` with the app's client id/secret headers."""

    def __init__(self, client_id: str, client_secret: str, *,
                 verify_url: str = OTPLESS_VERIFY_URL, timeout: float = 10.0,
                 session: Optional[requests.Session] = None) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.verify_url = verify_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def verify(self, token: str) -> VerificationResult:
        """
        Ask OTPless whether `token` is genuine.

        A non-2xx answer is a normal "not verified" result, not an exception.

        Raises:
            UpstreamError: the request itself failed (DNS, timeout, TLS...).
        """
        headers = {
            "Content-Type": "application/json",
            "client-id": self.client_id,
            "client-secret": self.client_secret,
        }
        try:
            response = self._session.post(
                self.verify_url, json={"token": token}, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError("OTPless verification request failed") from e

        claims = _json_body(response)
        if not response.ok:
            logger.warning("OTPless rejected token (status %s)", response.status_code)
        return VerificationResult(ok=response.ok, claims=claims, status_code=response.status_code)


class ShopifyAdminClient:
    """Customer search/create against the Shopify Admin REST API."""

    def __init__(self, store_url: str, access_token: str, *,
                 api_version: str = "2023-10", timeout: float = 10.0,
                 session: Optional[requests.Session] = None) -> None:
        self.store_url = store_url.rstrip("/")
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self._session = session or requests.Session()

    def _endpoint(self, path: str) -> str:
        return f"{self.store_url}/admin/api/{self.api_version}/{path}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }

    def find_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Return the first customer matching `email`, or None."""
        try:
            response = self._session.get(
                self._endpoint("customers/search.json"),
                params={"query": f"email:{email}"},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError("Shopify customer search request failed") from e

        body = _json_body(response)
        if not response.ok:
            raise UpstreamError("Shopify customer search failed", response.status_code, body)
        customers = body.get("customers") or []
        return customers[0] if customers else None

    def create_customer(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a customer from `record` (see relay.models.build_customer_record).

        Raises:
            UpstreamError: transport failure or a non-2xx answer from Shopify.
        """
        try:
            response = self._session.post(
                self._endpoint("customers.json"),
                json={"customer": record},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError("Shopify customer create request failed") from e

        body = _json_body(response)
        if not response.ok or "customer" not in body:
            raise UpstreamError("Shopify customer create failed", response.status_code, body)
        return body["customer"]
