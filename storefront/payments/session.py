"""
Lecture de la session Stripe Checkout (source de vérité des montants).
- Convertit le payload Stripe (dict, line_items et produits expandés) en modèles typés.
- Tolérant aux champs absents: tout ce qui manque retombe sur None / 0.
- Aucun montant n'est recalculé ici: on lit ceux que Stripe a calculés.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

PAID_STATUSES = ("paid", "no_payment_required")


class ShippingDetails(BaseModel):
    name: Optional[str] = None
    address: Optional[Dict[str, Any]] = None


class SessionLineItem(BaseModel):
    description: Optional[str] = None
    quantity: int = 1
    amount_total: int = 0
    product_name: Optional[str] = None
    image: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.product_name or self.description or "Product"


class CheckoutSession(BaseModel):
    id: str
    payment_status: str = ""
    customer_email: Optional[str] = None
    shipping: Optional[ShippingDetails] = None
    payment_intent: Optional[str] = None
    amount_subtotal: int = 0
    amount_total: int = 0
    amount_shipping: int = 0
    amount_tax: int = 0
    line_items: List[SessionLineItem] = Field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        return self.payment_status in PAID_STATUSES


def _obj(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _ref_id(value: Any) -> Optional[str]:
    # payment_intent peut être un id ("pi_...") ou un objet expandé
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _product_of(item: Dict[str, Any]) -> Dict[str, Any]:
    price = _obj(item.get("price"))
    return _obj(price.get("product"))


def parse_line_item(item: Dict[str, Any]) -> SessionLineItem:
    """
    Extrait une ligne de session:
    - quantity: 1 par défaut (Stripe peut omettre la quantité)
    - product: price.product expandé -> name, images[0], metadata {size, color, productId, variantId}
    """
    product = _product_of(item)
    images = product.get("images") or []
    metadata = {str(k): str(v) for k, v in _obj(product.get("metadata")).items() if v not in (None, "")}
    return SessionLineItem(
        description=item.get("description"),
        quantity=int(item.get("quantity") or 1),
        amount_total=int(item.get("amount_total") or 0),
        product_name=product.get("name"),
        image=images[0] if images else None,
        metadata=metadata,
    )


def parse_session(session: Dict[str, Any]) -> CheckoutSession:
    """
    Construit un CheckoutSession depuis le dict renvoyé par Stripe.
    - Email: customer_details.email puis customer_email
    - Adresse: shipping_details (ou collected_information.shipping_details sur les API récentes),
      sinon None
    """
    session = _obj(session)
    customer = _obj(session.get("customer_details"))
    shipping_src = _obj(session.get("shipping_details")) or _obj(
        _obj(session.get("collected_information")).get("shipping_details")
    )
    shipping = None
    if shipping_src:
        shipping = ShippingDetails(name=shipping_src.get("name"), address=shipping_src.get("address"))

    line_items_obj = _obj(session.get("line_items"))
    items = [parse_line_item(_obj(li)) for li in (line_items_obj.get("data") or [])]

    return CheckoutSession(
        id=str(session.get("id") or ""),
        payment_status=str(session.get("payment_status") or ""),
        customer_email=customer.get("email") or session.get("customer_email"),
        shipping=shipping,
        payment_intent=_ref_id(session.get("payment_intent")),
        amount_subtotal=int(session.get("amount_subtotal") or 0),
        amount_total=int(session.get("amount_total") or 0),
        amount_shipping=int(_obj(session.get("shipping_cost")).get("amount_total") or 0),
        amount_tax=int(_obj(session.get("total_details")).get("amount_tax") or 0),
        line_items=items,
    )
