"""
Logique panier pure (pas de Stripe, pas de DB).
- Le client n'envoie que des identifiants et des quantités: les prix viennent du catalogue.
- Chaque ligne Stripe embarque productId/variantId/size/color dans product_data.metadata,
  ce qui permet de reconstruire les OrderItems sans relire le catalogue.
"""
import json
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

from storefront.orders.errors import InvalidRequest
from storefront.utils.money import major_to_minor

# Stripe limite chaque valeur de metadata à 500 caractères
METADATA_VALUE_MAX = 500

LineKey = Tuple[str, str, str, str]


class CartItem(BaseModel):
    productId: str = ""
    variantId: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: int = 0
    # Prix affiché côté client: ignoré, le catalogue fait foi
    price: Optional[float] = Field(default=None, exclude=True)


# module storefront.payments.cart
def aggregate_quantities(items: List[CartItem]) -> Dict[LineKey, Dict[str, Any]]:
    """
    Agrège un panier brut en {(productId, variantId, size, color): {"item": CartItem, "quantity": n}}.
    - Ignore les lignes invalides (productId vide, quantity <= 0).
    - Soulève InvalidRequest si aucune ligne valide n'est présente.
    """
    lines: Dict[LineKey, Dict[str, Any]] = {}
    for it in items or []:
        product_id = (it.productId or "").strip()
        qty = int(it.quantity or 0)
        if not product_id or qty <= 0:
            continue
        key = (product_id, it.variantId or "", it.size or "", it.color or "")
        if key in lines:
            lines[key]["quantity"] += qty
        else:
            lines[key] = {"item": it, "quantity": qty}
    if not lines:
        raise InvalidRequest("Panier invalide")
    return lines

def product_metadata(item: CartItem) -> Dict[str, str]:
    meta = {
        "productId": item.productId,
        "variantId": item.variantId or "",
        "size": item.size or "",
        "color": item.color or "",
    }
    return {k: v for k, v in meta.items() if v}

def to_line_items(
    products_by_id: Dict[str, Dict[str, Any]],
    lines: Dict[LineKey, Dict[str, Any]],
    currency: str,
) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) à partir du catalogue et des lignes agrégées.
    - Ignore les produits introuvables ou à prix non valide.
    - Soulève InvalidRequest si aucune ligne valide n'est construite.
    """
    line_items: List[Dict[str, Any]] = []
    for (product_id, _, _, _), line in lines.items():
        product = products_by_id.get(product_id)
        if not product:
            continue
        unit_amount = major_to_minor(product.get("price"))
        if unit_amount <= 0:
            continue
        item: CartItem = line["item"]
        images = [img for img in (product.get("images") or []) if img]
        product_data: Dict[str, Any] = {
            "name": product.get("name") or item.name or "Product",
            "metadata": product_metadata(item),
        }
        image = item.image or (images[0] if images else None)
        if image and image.startswith("http"):
            product_data["images"] = [image]
        line_items.append({
            "quantity": line["quantity"],
            "price_data": {
                "currency": currency,
                "unit_amount": unit_amount,
                "product_data": product_data,
            },
        })
    if not line_items:
        raise InvalidRequest("Aucun article valide")
    return line_items

def subtotal_minor(line_items: List[Dict[str, Any]]) -> int:
    return sum(li["price_data"]["unit_amount"] * li["quantity"] for li in line_items)

def shipping_options(subtotal: int, *, fee: int, free_threshold: int, currency: str) -> List[Dict[str, Any]]:
    """Frais de port forfaitaires, offerts au-delà du seuil."""
    amount = 0 if subtotal >= free_threshold else fee
    return [{
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": amount, "currency": currency},
            "display_name": "Free shipping" if amount == 0 else "Standard shipping",
        },
    }]

def make_metadata(lines: Dict[LineKey, Dict[str, Any]]) -> Dict[str, str]:
    """
    Métadonnées de session: résumé compact du panier (tronqué à la limite Stripe).
    """
    cart_meta = [{"p": key[0], "v": key[1], "q": line["quantity"]} for key, line in lines.items()]
    metadata = {"cart": json.dumps(cart_meta, separators=(",", ":"))[:METADATA_VALUE_MAX]}
    return metadata
