"""
Email de confirmation de commande.
- Rendu HTML via Jinja2 (autoescape) à partir du template order_confirmation.html.
- Envoi via ResendClient.
- InvalidRecipient si l'email est vide, DeliveryFailure si Resend refuse: ces erreurs
  remontent à l'appelant direct, le vérificateur de commande les rend non fatales.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront.config import (
    CURRENCY_SYMBOL,
    MAIL_FROM,
    STORE_NAME,
    STORE_TAGLINE,
    SUPPORT_EMAIL,
    TEMPLATES_DIR,
)
from storefront.notifications.email_client import ResendClient
from storefront.orders.errors import InvalidRecipient
from storefront.orders.models import OrderItem, OrderTotals, StepOutcome
from storefront.utils.money import format_amount

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "order_confirmation.html"

def format_order_ref(order_id: str) -> str:
    """Référence lisible: 8 premiers caractères en majuscules (pas une donnée sensible)."""
    return (order_id or "")[:8].upper()

def build_environment(currency_symbol: str = CURRENCY_SYMBOL) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["money"] = lambda v: format_amount(v, currency_symbol)
    env.filters["shipping"] = lambda v: "Free" if Decimal(v) == 0 else format_amount(v, currency_symbol)
    return env


class ConfirmationNotifier:
    def __init__(
        self,
        client: ResendClient,
        *,
        sender: str = MAIL_FROM,
        store_name: str = STORE_NAME,
        store_tagline: str = STORE_TAGLINE,
        support_email: str = SUPPORT_EMAIL,
        currency_symbol: str = CURRENCY_SYMBOL,
    ):
        self._client = client
        self.sender = sender
        self.store_name = store_name
        self.store_tagline = store_tagline
        self.support_email = support_email
        self._env = build_environment(currency_symbol)

    def subject(self, order_id: str) -> str:
        return f"Order Confirmed - #{format_order_ref(order_id)}"

    def render(self, order_id: str, items: Iterable[OrderItem], totals: OrderTotals) -> str:
        """Rend le HTML; les lignes gardent l'ordre fourni (ordre des line_items Stripe)."""
        template = self._env.get_template(TEMPLATE_NAME)
        return template.render(
            store_name=self.store_name,
            store_tagline=self.store_tagline,
            support_email=self.support_email,
            order_ref=format_order_ref(order_id),
            items=list(items),
            totals=totals,
            year=datetime.now(timezone.utc).year,
        )

    def send(
        self,
        email: Optional[str],
        order_id: str,
        items: List[OrderItem],
        totals: OrderTotals,
    ) -> StepOutcome:
        if not (email or "").strip():
            raise InvalidRecipient("Email destinataire manquant")
        html = self.render(order_id, items, totals)
        data = self._client.send(
            sender=self.sender,
            to=[email.strip()],
            subject=self.subject(order_id),
            html=html,
        )
        message_id = (data or {}).get("id")
        logger.info("notifications.confirmation sent order_id=%s message_id=%s", order_id, message_id)
        return StepOutcome.ok(detail=message_id)
