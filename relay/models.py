import secrets

PASSWORD_BYTES = 16


def generate_password() -> str:
    """32 hex chars from the OS CSPRNG. Sent to Shopify only, never returned to clients."""
    return secrets.token_hex(PASSWORD_BYTES)


def build_customer_record(email, claims=None):
    """Shopify `customer` object for a user OTPless has just verified."""
    claims = claims or {}
    password = generate_password()
    return {
        'email': email,
        'first_name': claims.get('firstName') or 'OTPless',
        'last_name': claims.get('lastName') or 'User',
        'phone': claims.get('phoneNumber') or '',
        'verified_email': True,
        'password': password,
        'password_confirmation': password,
        'accepts_marketing': True,
    }
