from unittest import mock

import pytest

from relay import Settings, create_app
from relay.upstream import OtplessClient, ShopifyAdminClient, VerificationResult

STORE_URL = "https://shop.example.com"
MULTIPASS_SECRET = "test-secret"


@pytest.fixture
def settings():
    return Settings(
        otpless_client_id="client-id",
        otpless_client_secret="client-secret",
        shopify_store_url=STORE_URL,
        shopify_access_token="shpat_test",
        multipass_secret=MULTIPASS_SECRET,
        cors_origin=STORE_URL,
    )


@pytest.fixture
def otpless():
    client = mock.create_autospec(OtplessClient, instance=True)
    client.verify.return_value = VerificationResult(
        ok=True,
        claims={"firstName": "Ada", "lastName": "Lovelace", "phoneNumber": "+15550100"},
    )
    return client


@pytest.fixture
def shopify():
    client = mock.create_autospec(ShopifyAdminClient, instance=True)
    client.find_customer_by_email.return_value = {"id": 42, "email": "user@example.com"}
    return client


@pytest.fixture
def app(settings, otpless, shopify):
    return create_app(settings, otpless=otpless, shopify=shopify)


@pytest.fixture
def client(app):
    return app.test_client()
