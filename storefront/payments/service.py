"""
Cas d'usage 'payments': création de la session Stripe Checkout à partir d'un panier.
Orchestre cart (pur), repository (catalogue) et stripe_client.
"""
from typing import Any, Dict, List, Optional
import logging

from storefront.config import CURRENCY, FREE_SHIPPING_THRESHOLD_MINOR, SHIPPING_COUNTRIES, SHIPPING_FEE_MINOR
from storefront.orders.errors import InvalidRequest
from storefront.payments import cart as cart_logic
from storefront.payments.repository import ProductRepository
from storefront.payments.stripe_client import StripeGateway

logger = logging.getLogger(__name__)

SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

def with_session_placeholder(success_url: str) -> str:
    """Ajoute session_id={CHECKOUT_SESSION_ID} à l'URL de succès (clé d'idempotence côté page succès)."""
    if SESSION_ID_PLACEHOLDER in success_url:
        return success_url
    sep = "&" if "?" in success_url else "?"
    return f"{success_url}{sep}session_id={SESSION_ID_PLACEHOLDER}"


class CheckoutSessionCreator:
    def __init__(
        self,
        gateway: StripeGateway,
        products: ProductRepository,
        *,
        currency: str = CURRENCY,
        shipping_fee: int = SHIPPING_FEE_MINOR,
        free_shipping_threshold: int = FREE_SHIPPING_THRESHOLD_MINOR,
        shipping_countries: Optional[List[str]] = None,
    ):
        self.gateway = gateway
        self.products = products
        self.currency = currency
        self.shipping_fee = shipping_fee
        self.free_shipping_threshold = free_shipping_threshold
        self.shipping_countries = SHIPPING_COUNTRIES if shipping_countries is None else shipping_countries

    def create(
        self,
        *,
        items: List[cart_logic.CartItem],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Prépare la session Stripe à partir d'un panier.
        Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
        """
        if not success_url or not cancel_url:
            raise InvalidRequest("successUrl et cancelUrl sont requis")
        lines = cart_logic.aggregate_quantities(items)
        products = self.products.get_products_map(key[0] for key in lines)
        line_items = cart_logic.to_line_items(products, lines, self.currency)
        subtotal = cart_logic.subtotal_minor(line_items)
        session = self.gateway.create_session(
            line_items=line_items,
            mode="payment",
            success_url=with_session_placeholder(success_url),
            cancel_url=cancel_url,
            metadata=cart_logic.make_metadata(lines),
            customer_email=customer_email,
            shipping_options=cart_logic.shipping_options(
                subtotal,
                fee=self.shipping_fee,
                free_threshold=self.free_shipping_threshold,
                currency=self.currency,
            ),
            shipping_countries=self.shipping_countries,
        )
        logger.info(
            "payments.checkout session_created session_id=%s lines=%s subtotal_minor=%s",
            session.get("id"), len(line_items), subtotal,
        )
        return {"id": session.get("id"), "url": session.get("url")}
