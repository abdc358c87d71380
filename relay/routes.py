"""
RELAY API ROUTES - FLASK BLUEPRINT

Endpoints the storefront's login page calls after the OTPless widget hands
the browser a one-time token.

FLOW:
1. POST /api/auth/otpless            -> check the OTPless token, return the user data
2. POST /api/auth/shopify/customer   -> find/create the Shopify customer and
                                        return a Multipass redirect URL

EXAMPLE:
curl -X POST http://localhost:3000/api/auth/otpless -H "Content-Type: application/json" -d '{"token": "abc"}'
"""

from flask import Blueprint, current_app, jsonify, request

from multipass import InvalidPayload, MultipassError, validate_email

from .models import build_customer_record
from .upstream import UpstreamError

auth_bp = Blueprint('auth', __name__)


# --- Request validation ------------------------------------------------------
def _field_error(param, msg, value=None):
    return {'location': 'body', 'param': param, 'msg': msg, 'value': value}


def _require_token(data, errors):
    value = data.get('token')
    if value is None or value == '':
        errors.append(_field_error('token', 'Token is required', value))
        return None
    if not isinstance(value, str):
        errors.append(_field_error('token', 'Token must be a string', value))
        return None
    value = value.strip()
    if not value:
        errors.append(_field_error('token', 'Token is required', value))
        return None
    return value


def _require_email(data, errors):
    value = data.get('email')
    if value is None or value == '':
        errors.append(_field_error('email', 'Email is required', value))
        return None
    try:
        return validate_email(value)
    except InvalidPayload:
        errors.append(_field_error('email', 'Invalid email format', value))
        return None


def _validation_failed(errors):
    return jsonify({'error': 'Validation failed', 'details': errors}), 400


# --- Collaborators (built once in create_app) ---------------------------------
def _otpless():
    return current_app.extensions['otpless']


def _shopify():
    return current_app.extensions['shopify']


def _multipass():
    return current_app.extensions.get('multipass')


@auth_bp.route('/', methods=['GET'])
def index():
    return 'Hello from the OTPless relay server!'


@auth_bp.route('/api/auth/otpless', methods=['POST'])
def verify_otpless():
    """
    VERIFY AN OTPLESS TOKEN

      curl -X POST http://localhost:3000/api/auth/otpless -H "Content-Type: application/json" -d '{"token": "abc"}'

    Output:
      200 {"message": "Token verified successfully", "userData": {...}}
      401 {"error": "Token verification failed"}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    errors = []
    token = _require_token(data, errors)
    if errors:
        return _validation_failed(errors)

    try:
        result = _otpless().verify(token)
    except UpstreamError as e:
        current_app.logger.error('Error verifying token: %s', e)
        return jsonify({'error': 'Internal server error during verification'}), 500

    if not result.ok:
        return jsonify({'error': 'Token verification failed'}), 401

    current_app.logger.info('OTPless token verified')
    return jsonify({'message': 'Token verified successfully', 'userData': result.claims}), 200


@auth_bp.route('/api/auth/shopify/customer', methods=['POST'])
def shopify_customer():
    """
    FIND OR CREATE THE SHOPIFY CUSTOMER, THEN HAND BACK A LOGIN URL

      curl -X POST http://localhost:3000/api/auth/shopify/customer -H "Content-Type: application/json" -d '{"email": "a@b.com", "token": "abc"}'

    Output (Multipass secret configured):
      {"customer_id": 123, "redirect_url": "https://shop/account/login/multipass/..."}

    Output (no Multipass secret, the storefront has to log in client-side):
      {"customer_id": 123, "email": "a@b.com", "password_created": false}

    The OTPless token is verified again here; the first call's answer is not trusted.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    errors = []
    email = _require_email(data, errors)
    token = _require_token(data, errors)
    if errors:
        return _validation_failed(errors)

    try:
        verification = _otpless().verify(token)
        if not verification.ok:
            return jsonify({'error': 'Token verification failed'}), 401

        shopify = _shopify()
        customer = shopify.find_customer_by_email(email)
        created = False
        if customer is not None:
            current_app.logger.info('Existing customer found: %s', customer.get('id'))
        else:
            record = build_customer_record(email, verification.claims)
            try:
                customer = shopify.create_customer(record)
            except UpstreamError as e:
                current_app.logger.error('Failed to create customer: %s (status %s)', e, e.status_code)
                return jsonify({'error': 'Failed to create customer account'}), 500
            created = True
            current_app.logger.info('New customer created: %s', customer.get('id'))

        customer_email = customer.get('email') or email
        generator = _multipass()
        if generator is None:
            current_app.logger.warning('SHOPIFY_MULTIPASS_SECRET not set; returning without a redirect URL')
            return jsonify({
                'customer_id': customer.get('id'),
                'email': customer_email,
                'password_created': created,
            }), 200

        login = generator.generate_for_email(customer_email)
        return jsonify({
            'customer_id': customer.get('id'),
            'redirect_url': login.url,
        }), 200

    except InvalidPayload as e:
        return jsonify({'error': str(e)}), 400
    except (UpstreamError, MultipassError) as e:
        current_app.logger.error('Error creating/getting Shopify customer: %s', e)
        return jsonify({'error': 'Internal server error during customer creation'}), 500
