"""
Contrats partagés du règlement de commande (Order, OrderItem, totaux, résultats).
- Montants en unités majeures (Decimal, 2 décimales), dérivés des montants Stripe.
- to_row(): sérialisation vers les colonnes Supabase (numeric -> chaîne "0.00").
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from storefront.payments.session import CheckoutSession, SessionLineItem
from storefront.utils.money import as_db_amount, minor_to_major, unit_price

ORDER_STATUS_PAID = "paid"


class SettlementState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFYING = "verifying"
    ALREADY_SETTLED = "already_settled"
    SETTLED = "settled"
    REJECTED = "rejected"


class OrderTotals(BaseModel):
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    shipping: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")

    @classmethod
    def from_session(cls, session: CheckoutSession) -> "OrderTotals":
        return cls(
            subtotal=minor_to_major(session.amount_subtotal),
            tax=minor_to_major(session.amount_tax),
            shipping=minor_to_major(session.amount_shipping),
            total=minor_to_major(session.amount_total),
        )


class OrderItem(BaseModel):
    product_name: str
    quantity: int = Field(default=1, ge=1)
    price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None
    product_image: Optional[str] = None
    product_id: Optional[str] = None
    variant_id: Optional[str] = None

    @classmethod
    def from_line_item(cls, item: SessionLineItem) -> "OrderItem":
        qty = item.quantity or 1
        meta = item.metadata
        return cls(
            product_name=item.display_name,
            quantity=qty,
            price=unit_price(item.amount_total, qty),
            size=meta.get("size"),
            color=meta.get("color"),
            product_image=item.image,
            product_id=meta.get("productId"),
            variant_id=meta.get("variantId"),
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_row(self, order_id: str) -> Dict[str, Any]:
        return {
            "order_id": order_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": as_db_amount(self.price),
            "size": self.size,
            "color": self.color,
            "product_image": self.product_image,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
        }


class Order(BaseModel):
    id: str
    email: str = ""
    status: str = ORDER_STATUS_PAID
    totals: OrderTotals
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "status": self.status,
            "subtotal": as_db_amount(self.totals.subtotal),
            "tax": as_db_amount(self.totals.tax),
            "shipping": as_db_amount(self.totals.shipping),
            "total": as_db_amount(self.totals.total),
            "stripe_session_id": self.stripe_session_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "shipping_address": self.shipping_address,
        }


class StepOutcome(BaseModel):
    """Résultat explicite d'une étape non fatale (items, email), consigné dans les logs."""
    status: str
    detail: Optional[str] = None

    @classmethod
    def ok(cls, detail: Optional[str] = None) -> "StepOutcome":
        return cls(status="ok", detail=detail)

    @classmethod
    def failed(cls, detail: str) -> "StepOutcome":
        return cls(status="failed", detail=detail)

    @classmethod
    def skipped(cls, detail: Optional[str] = None) -> "StepOutcome":
        return cls(status="skipped", detail=detail)


class VerificationResult(BaseModel):
    order_id: str
    already_processed: bool = False
    state: SettlementState = SettlementState.SETTLED
    items: Optional[StepOutcome] = None
    notification: Optional[StepOutcome] = None

    def to_response(self) -> Dict[str, Any]:
        if self.already_processed:
            return {"orderId": self.order_id, "alreadyProcessed": True}
        return {"orderId": self.order_id, "success": True}


def build_items(session: CheckoutSession) -> List[OrderItem]:
    """Une OrderItem par ligne de session, dans l'ordre fourni par Stripe."""
    return [OrderItem.from_line_item(item) for item in session.line_items]
