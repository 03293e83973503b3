"""Endpoint interne de (re)envoi de l'email de confirmation.
- Utilisé par l'outillage de réconciliation quand l'envoi a échoué pendant le règlement.
- Protégé par X-Internal-Token (INTERNAL_API_TOKEN).
"""
from decimal import Decimal
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.app_setup.services import get_notifier
from storefront.notifications.service import ConfirmationNotifier
from storefront.orders.errors import NotificationFailure
from storefront.orders.models import OrderItem, OrderTotals
from storefront.utils.security import require_internal_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications API"])


class ConfirmationItem(BaseModel):
    product_name: str
    quantity: int = Field(default=1, ge=1)
    price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None
    product_image: Optional[str] = None


class OrderConfirmationRequest(BaseModel):
    orderId: str
    email: str = ""
    orderItems: List[ConfirmationItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


@router.post("/order-confirmation", dependencies=[Depends(require_internal_token)])
def send_order_confirmation(
    body: OrderConfirmationRequest,
    notifier: Optional[ConfirmationNotifier] = Depends(get_notifier),
):
    """
    Rend et envoie l'email de confirmation pour une commande existante.
    - Erreurs: 400 si email vide, 502 si Resend refuse, 503 si Resend non configuré.
    """
    if notifier is None:
        raise HTTPException(status_code=503, detail="Notifications désactivées (RESEND_API_KEY manquant)")
    items = [OrderItem(**item.model_dump()) for item in body.orderItems]
    totals = OrderTotals(subtotal=body.subtotal, tax=body.tax, shipping=body.shipping, total=body.total)
    logger.info("notifications.confirmation requested order_id=%s", body.orderId)
    try:
        outcome = notifier.send(body.email, body.orderId, items, totals)
    except NotificationFailure as e:
        logger.error("notifications.confirmation failed order_id=%s code=%s error=%s", body.orderId, e.code, e.message)
        raise
    return {"success": True, "data": {"id": outcome.detail}}
