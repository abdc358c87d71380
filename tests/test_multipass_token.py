import base64
import string
from datetime import datetime, timezone

import pytest

from multipass import token as mp
from multipass.errors import ConfigurationError, CryptoFailure, InvalidPayload
from multipass.payload import CustomerIdentityPayload

SECRET = "test-secret"
STORE_URL = "https://shop.example.com"
FIXED_IV = bytes(range(16))

# Reference vector for SECRET, FIXED_IV and PAYLOAD below.
KEY_HEX = "9caf06bb4436cdbfa20af9121a626bc1"
CIPHER_TEXT = (
    "s/KDMiyhynD26aRjzxRm97W56Chta1LrI+1RgP+jGs1H/T9H0XVy32KjtwPgOOdYPYKZWS5+"
    "XRufefwdTBwRrkTRRluYKxxuc06f1H31r7SxAscHFJowf8w4J99BEZ6xL2RETsJtiZKLszxJeRz8Tw=="
)
SIGNATURE = "lFNAhgN5OjSOzQv2nt+sUyU2Emz84TN8TFpaf1Kth4E="
TOKEN = (
    "cy9LRE1peWh5bkQyNmFSanp4Um05N1c1NkNodGExTHJJKzFSZ1ArakdzMUgvVDlIMFhWeTMy"
    "S2p0d1BnT09kWVBZS1pXUzUrWFJ1ZmVmd2RUQndScmtUUlJsdVlLeHh1YzA2ZjFIMzFyN1N4"
    "QXNjSEZKb3dmOHc0Sjk5QkVaNnhMMlJFVHNKdGlaS0xzenhKZVJ6OFR3PT0tLWxGTkFoZ041"
    "T2pTT3pRdjJudCtzVXlVMkVtejg0VE44VEZwYWYxS3RoNEU9"
)
CANONICAL_JSON = (
    b'{"email":"a@b.com","created_at":"2024-01-01T00:00:00.000Z",'
    b'"return_to":"https://shop.example.com/account"}'
)


@pytest.fixture
def payload():
    return CustomerIdentityPayload(
        email="a@b.com",
        created_at="2024-01-01T00:00:00.000Z",
        return_to="https://shop.example.com/account",
    )


@pytest.fixture
def fixed_iv(monkeypatch):
    monkeypatch.setattr(mp, "_random_iv", lambda: FIXED_IV)
    return FIXED_IV


def test_key_derivation_reuses_one_key() -> None:
    keys = mp.derive_keys(SECRET)
    assert keys.encryption_key.hex() == KEY_HEX
    assert keys.signing_key == keys.encryption_key
    assert mp.derive_keys(SECRET.encode("utf-8")) == keys


def test_known_answer_intermediates(payload) -> None:
    keys = mp.derive_keys(SECRET)
    assert payload.to_json() == CANONICAL_JSON

    cipher_text = mp.encrypt_payload(payload.to_json(), keys.encryption_key, FIXED_IV)
    assert cipher_text == CIPHER_TEXT

    signature = mp.sign(cipher_text, keys.signing_key)
    assert signature == SIGNATURE
    assert mp.assemble_token(cipher_text, signature) == TOKEN


def test_known_answer_token_and_url(payload, fixed_iv) -> None:
    result = mp.generate_token(payload, SECRET, STORE_URL)
    assert result.token == TOKEN
    assert result.url == f"{STORE_URL}/account/login/multipass/{TOKEN}"


def test_token_has_single_separator(payload) -> None:
    result = mp.generate_token(payload, SECRET, STORE_URL)
    decoded = base64.b64decode(result.token).decode("ascii")
    assert decoded.count("--") == 1
    cipher_text, signature = decoded.split("--")
    base64.b64decode(cipher_text, validate=True)
    assert len(base64.b64decode(signature, validate=True)) == 32


def test_decrypt_recovers_canonical_json(payload, fixed_iv) -> None:
    result = mp.generate_token(payload, SECRET, STORE_URL)
    cipher_text, _ = mp.split_token(result.token)
    key = mp.derive_keys(SECRET).encryption_key
    assert mp.decrypt_cipher_text(cipher_text, key, fixed_iv) == payload.to_json()
    assert mp.decode_token(result.token, SECRET, fixed_iv) == payload.to_dict()


def test_fresh_iv_for_every_call(monkeypatch) -> None:
    drawn = []
    real_iv = mp._random_iv

    def recording_iv():
        iv = real_iv()
        drawn.append(iv)
        return iv

    monkeypatch.setattr(mp, "_random_iv", recording_iv)
    first_payload = CustomerIdentityPayload.for_customer(
        "user@example.com", STORE_URL, now=datetime(2024, 1, 1, tzinfo=timezone.utc)
    )
    second_payload = CustomerIdentityPayload.for_customer(
        "user@example.com", STORE_URL, now=datetime(2024, 1, 1, 0, 0, 5, tzinfo=timezone.utc)
    )
    first = mp.generate_token(first_payload, SECRET, STORE_URL)
    second = mp.generate_token(second_payload, SECRET, STORE_URL)

    assert first.token != second.token
    assert len(drawn) == 2 and drawn[0] != drawn[1]

    decoded_first = mp.decode_token(first.token, SECRET, drawn[0])
    decoded_second = mp.decode_token(second.token, SECRET, drawn[1])
    decoded_first.pop("created_at")
    decoded_second.pop("created_at")
    assert decoded_first == decoded_second


def test_same_payload_encrypts_differently(payload) -> None:
    assert mp.generate_token(payload, SECRET, STORE_URL).token != \
        mp.generate_token(payload, SECRET, STORE_URL).token


def test_tampering_any_cipher_text_char_breaks_signature() -> None:
    alphabet = string.ascii_letters + string.digits + "+/"
    for i, ch in enumerate(CIPHER_TEXT.rstrip("=")):
        replacement = alphabet[(alphabet.index(ch) + 1) % len(alphabet)]
        tampered = CIPHER_TEXT[:i] + replacement + CIPHER_TEXT[i + 1:]
        forged = mp.assemble_token(tampered, SIGNATURE)
        assert mp.verify_signature(forged, SECRET) is False


def test_verify_signature_accepts_genuine_token() -> None:
    assert mp.verify_signature(TOKEN, SECRET) is True
    assert mp.verify_signature(TOKEN, "other-secret") is False


def test_decode_rejects_wrong_secret() -> None:
    with pytest.raises(CryptoFailure):
        mp.decode_token(TOKEN, "other-secret", FIXED_IV)


def test_split_rejects_garbage() -> None:
    with pytest.raises(CryptoFailure):
        mp.split_token("not base64!!")
    with pytest.raises(CryptoFailure):
        mp.split_token(base64.b64encode(b"no-separator-here").decode())
    with pytest.raises(CryptoFailure):
        mp.split_token(base64.b64encode(b"a--b--c").decode())


@pytest.mark.parametrize("secret", ["", b"", None])
def test_empty_secret_is_configuration_error(payload, secret) -> None:
    with pytest.raises(ConfigurationError):
        mp.generate_token(payload, secret, STORE_URL)


def test_bad_iv_length_is_crypto_failure() -> None:
    key = mp.derive_keys(SECRET).encryption_key
    with pytest.raises(CryptoFailure):
        mp.encrypt_payload(b"{}", key, b"short")


def test_bad_key_length_is_crypto_failure() -> None:
    with pytest.raises(CryptoFailure):
        mp.encrypt_payload(b"{}", b"0123", FIXED_IV)


def test_cipher_fault_surfaces_as_crypto_failure(payload, monkeypatch) -> None:
    monkeypatch.setattr(mp, "_random_iv", lambda: b"\x00" * 8)
    with pytest.raises(CryptoFailure):
        mp.generate_token(payload, SECRET, STORE_URL)


def test_login_url_percent_encodes_token() -> None:
    url = mp.build_login_url(STORE_URL + "/", "ab+c/d==")
    assert url == f"{STORE_URL}/account/login/multipass/ab%2Bc%2Fd%3D%3D"


def test_generator_binds_configuration(fixed_iv, monkeypatch) -> None:
    monkeypatch.setattr(
        "multipass.payload.utc_timestamp", lambda now=None: "2024-01-01T00:00:00.000Z"
    )
    gen = mp.MultipassTokenGenerator(SECRET, STORE_URL + "/")
    result = gen.generate_for_email("a@b.com")
    assert result.token == TOKEN


def test_generator_requires_configuration() -> None:
    with pytest.raises(ConfigurationError):
        mp.MultipassTokenGenerator("", STORE_URL)
    with pytest.raises(ConfigurationError):
        mp.MultipassTokenGenerator(SECRET, "")


@pytest.mark.parametrize("email", ["", "not-an-email", None, "   "])
def test_generator_rejects_bad_email(email) -> None:
    gen = mp.MultipassTokenGenerator(SECRET, STORE_URL)
    with pytest.raises(InvalidPayload):
        gen.generate_for_email(email)


@pytest.mark.parametrize("token", [None, 12345, object()])
def test_split_rejects_non_text_token(token) -> None:
    with pytest.raises(CryptoFailure):
        mp.split_token(token)
    with pytest.raises(CryptoFailure):
        mp.verify_signature(token, SECRET)
