import logging
from typing import List, Optional

from fastapi import APIRouter, Request, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.app_setup.services import get_checkout_creator, get_gateway, get_order_verifier
from storefront.orders.errors import PaymentIncomplete, SettlementError
from storefront.orders.service import OrderVerifier
from storefront.payments.cart import CartItem
from storefront.payments.service import CheckoutSessionCreator
from storefront.payments.stripe_client import StripeGateway
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

SETTLEMENT_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}


class CheckoutRequest(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    successUrl: str = ""
    cancelUrl: str = ""
    customerEmail: Optional[str] = None


# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(body: CheckoutRequest, creator: CheckoutSessionCreator = Depends(get_checkout_creator)):
    """
    Crée une session Checkout Stripe pour le panier.
    - Entrée JSON: {"items": [{"productId", "variantId", "size", "color", "quantity"}], "successUrl", "cancelUrl"}
    - Prix: relus dans le catalogue, le prix envoyé par le client est ignoré
    - Réponse: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    - Erreurs: 400 si panier invalide, 502 si Stripe refuse
    """
    try:
        return creator.create(
            items=body.items,
            success_url=body.successUrl,
            cancel_url=body.cancelUrl,
            customer_email=body.customerEmail,
        )
    except SettlementError as e:
        logger.warning("payments.checkout error code=%s message=%s", e.code, e.message)
        raise


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(
    request: Request,
    gateway: StripeGateway = Depends(get_gateway),
    verifier: OrderVerifier = Depends(get_order_verifier),
):
    """
    Webhook Stripe (Checkout): déclenche le même règlement que la page succès.
    - Signature: validée par gateway.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - checkout.session.completed / async_payment_succeeded -> OrderVerifier.verify(session.id)
    - Paiement encore en attente (async) -> {"status": "pending"}, Stripe renverra l'événement final
    - Réponses: {"status": "ok", "orderId", "alreadyProcessed"} ou {"status": "ignored"}
    - Erreurs: 400 si signature/payload invalide; autres erreurs -> 5xx pour que Stripe réessaie
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    event = gateway.parse_event(payload, sig_header)
    event_type = (event or {}).get("type")
    if event_type not in SETTLEMENT_EVENTS:
        return JSONResponse({"status": "ignored"})

    session_id = (((event or {}).get("data") or {}).get("object") or {}).get("id")
    try:
        result = await run_in_threadpool(verifier.verify, session_id)
    except PaymentIncomplete as e:
        logger.info("payments.webhook pending session_id=%s payment_status=%s", session_id, e.payment_status)
        return JSONResponse({"status": "pending"})
    except SettlementError as e:
        logger.error("payments.webhook error session_id=%s code=%s message=%s", session_id, e.code, e.message)
        raise
    logger.info(
        "payments.webhook settled type=%s session_id=%s order_id=%s already_processed=%s",
        event_type, session_id, result.order_id, result.already_processed,
    )
    return JSONResponse({"status": "ok", "orderId": result.order_id, "alreadyProcessed": result.already_processed})
