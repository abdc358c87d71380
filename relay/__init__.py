"""
Flask relay: OTPless verification -> Shopify customer -> Multipass login URL.
"""

from .app import create_app
from .config import Settings

__all__ = ['create_app', 'Settings']
