"""
Conteneur des clients et services construits au démarrage (lifespan).
- Aucun client global implicite: Stripe, Supabase et Resend sont créés ici puis injectés.
- Les vues récupèrent les services via les dépendances get_* (surchargées en tests).
"""
import logging
from typing import Any, Optional

from fastapi import HTTPException, Request

from storefront.config import RESEND_API_KEY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from storefront.infra.supabase_client import get_service_supabase
from storefront.notifications.email_client import ResendClient
from storefront.notifications.service import ConfirmationNotifier
from storefront.orders.repository import OrderRepository
from storefront.orders.service import OrderVerifier
from storefront.payments.repository import ProductRepository
from storefront.payments.service import CheckoutSessionCreator
from storefront.payments.stripe_client import StripeGateway

logger = logging.getLogger(__name__)


class Services:
    def __init__(
        self,
        *,
        gateway: StripeGateway,
        verifier: OrderVerifier,
        checkout: CheckoutSessionCreator,
        notifier: Optional[ConfirmationNotifier] = None,
        supabase: Optional[Any] = None,
    ):
        self.gateway = gateway
        self.verifier = verifier
        self.checkout = checkout
        self.notifier = notifier
        self.supabase = supabase


def build_services() -> Services:
    """
    Construit les services depuis la configuration.
    - STRIPE_SECRET_KEY absent: erreur fatale (RuntimeError) au démarrage.
    - RESEND_API_KEY absent: notifications désactivées (les commandes restent créées).
    """
    gateway = StripeGateway(STRIPE_SECRET_KEY, webhook_secret=STRIPE_WEBHOOK_SECRET)
    supabase = get_service_supabase()
    notifier = None
    if RESEND_API_KEY:
        notifier = ConfirmationNotifier(ResendClient(RESEND_API_KEY))
    else:
        logger.warning("services.build RESEND_API_KEY missing, confirmation emails disabled")
    verifier = OrderVerifier(gateway, OrderRepository(supabase), notifier)
    checkout = CheckoutSessionCreator(gateway, ProductRepository(supabase))
    return Services(gateway=gateway, verifier=verifier, checkout=checkout, notifier=notifier, supabase=supabase)


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services non initialisés")
    return services

def get_order_verifier(request: Request) -> OrderVerifier:
    return get_services(request).verifier

def get_checkout_creator(request: Request) -> CheckoutSessionCreator:
    return get_services(request).checkout

def get_gateway(request: Request) -> StripeGateway:
    return get_services(request).gateway

def get_notifier(request: Request) -> Optional[ConfirmationNotifier]:
    return get_services(request).notifier
