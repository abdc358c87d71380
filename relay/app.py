"""
FLASK APP ENTRY POINT - OTPLESS / SHOPIFY RELAY
===============================================

Builds the Flask app: CORS for the storefront origin, the auth blueprint,
and the collaborators every request shares (OTPless client, Shopify client,
Multipass generator).

Run locally:
    python -m relay.app            # or the `otpless-relay` console script
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from multipass import MultipassTokenGenerator

from .config import Settings
from .routes import auth_bp
from .upstream import OtplessClient, ShopifyAdminClient

logger = logging.getLogger(__name__)


def configure_logging(level='INFO'):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def _handle_http_error(error):
    return jsonify({'error': error.description}), error.code


def create_app(settings=None, *, otpless=None, shopify=None):
    """
    Create the relay app.

    Arguments:
        settings: Settings; read from the environment when omitted
        otpless / shopify: pre-built clients (tests pass fakes here)

    Raises:
        multipass.ConfigurationError: a Multipass secret is set but the store URL is not
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config['RELAY_SETTINGS'] = settings

    CORS(app,
         origins=settings.cors_origin,
         methods=['GET', 'POST', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization'],
         supports_credentials=True)

    if otpless is None:
        otpless = OtplessClient(
            settings.otpless_client_id,
            settings.otpless_client_secret,
            timeout=settings.request_timeout,
        )
    if shopify is None:
        shopify = ShopifyAdminClient(
            settings.shopify_store_url,
            settings.shopify_access_token,
            api_version=settings.shopify_api_version,
            timeout=settings.request_timeout,
        )
    app.extensions['otpless'] = otpless
    app.extensions['shopify'] = shopify
    app.extensions['multipass'] = None
    if settings.multipass_enabled:
        app.extensions['multipass'] = MultipassTokenGenerator(
            settings.multipass_secret, settings.shopify_store_url
        )
    else:
        logger.warning('Multipass disabled: SHOPIFY_MULTIPASS_SECRET is not set')

    app.register_blueprint(auth_bp)
    app.register_error_handler(HTTPException, _handle_http_error)
    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info('Server is listening on http://localhost:%s', settings.port)
    app.run(host='0.0.0.0', port=settings.port)


if __name__ == '__main__':
    main()
