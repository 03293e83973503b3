"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique panier, lecture de session Stripe, client Stripe, repository catalogue et service checkout.
"""

from .cart import CartItem, aggregate_quantities, product_metadata, to_line_items, shipping_options, make_metadata
from .session import CheckoutSession, SessionLineItem, parse_session, parse_line_item
from .stripe_client import StripeGateway, to_dict
from .repository import ProductRepository
from .service import CheckoutSessionCreator, with_session_placeholder

__all__ = [
    # cart
    "CartItem",
    "aggregate_quantities",
    "product_metadata",
    "to_line_items",
    "shipping_options",
    "make_metadata",
    # session
    "CheckoutSession",
    "SessionLineItem",
    "parse_session",
    "parse_line_item",
    # stripe
    "StripeGateway",
    "to_dict",
    # repository
    "ProductRepository",
    # services
    "CheckoutSessionCreator",
    "with_session_placeholder",
]
