"""
Cas d'usage 'orders': vérification et matérialisation d'une session Stripe payée.
Étapes (strictement séquentielles):
  1) Relire la session chez Stripe (source de vérité) et vérifier payment_status
  2) Idempotence: une commande existe déjà pour stripe_session_id -> on la renvoie
  3) Insérer la commande (fatal en cas d'échec, sauf violation d'unicité = déjà traitée)
  4) Insérer les lignes (non fatal: la commande reste la source de vérité)
  5) Envoyer l'email de confirmation (non fatal)
"""
from typing import List, Optional
from uuid import uuid4
import logging

from storefront.orders.errors import (
    DuplicateOrder,
    InvalidRequest,
    InvalidRecipient,
    PaymentIncomplete,
    PersistenceFailure,
)
from storefront.orders.models import (
    Order,
    OrderItem,
    OrderTotals,
    SettlementState,
    StepOutcome,
    VerificationResult,
    build_items,
)
from storefront.orders.repository import OrderRepository
from storefront.payments.session import CheckoutSession, parse_session
from storefront.payments.stripe_client import StripeGateway

logger = logging.getLogger(__name__)


class OrderVerifier:
    """
    Vérificateur de commande: un appel = une unité de traitement indépendante.
    Aucun état mutable partagé entre appels; la concurrence repose sur la contrainte
    UNIQUE(orders.stripe_session_id).
    """

    def __init__(self, gateway: StripeGateway, repository: OrderRepository, notifier=None):
        self.gateway = gateway
        self.repository = repository
        self.notifier = notifier

    def verify(self, session_id: Optional[str]) -> VerificationResult:
        session_id = (session_id or "").strip()
        logger.info("orders.verify started session_id=%s", session_id or "-")
        if not session_id:
            raise InvalidRequest("session_id manquant")

        session = parse_session(self.gateway.get_session(session_id))
        logger.info(
            "orders.verify session_retrieved session_id=%s payment_status=%s email=%s items=%s",
            session_id, session.payment_status, session.customer_email, len(session.line_items),
        )
        if not session.is_settled:
            raise PaymentIncomplete(
                f"Paiement non confirmé (payment_status={session.payment_status or 'inconnu'})",
                session_id=session_id,
                payment_status=session.payment_status,
            )

        existing_id = self.repository.find_order_id_by_session(session_id)
        if existing_id:
            logger.info("orders.verify order_already_exists session_id=%s order_id=%s", session_id, existing_id)
            return self._already_settled(existing_id)

        return self._materialize(session_id, session)

    def _already_settled(self, order_id: str) -> VerificationResult:
        return VerificationResult(
            order_id=order_id,
            already_processed=True,
            state=SettlementState.ALREADY_SETTLED,
        )

    def _materialize(self, session_id: str, session: CheckoutSession) -> VerificationResult:
        order = Order(
            id=str(uuid4()),
            email=session.customer_email or "",
            totals=OrderTotals.from_session(session),
            stripe_session_id=session_id,
            stripe_payment_intent_id=session.payment_intent,
            shipping_address=session.shipping.model_dump() if session.shipping else None,
        )
        try:
            created = self.repository.insert_order(order.to_row())
        except DuplicateOrder:
            # Course avec un autre appel (webhook + page succès): relire la commande gagnante
            winner_id = self.repository.find_order_id_by_session(session_id)
            if not winner_id:
                raise PersistenceFailure("Commande en conflit introuvable", session_id=session_id)
            logger.info("orders.verify order_already_exists session_id=%s order_id=%s race=1", session_id, winner_id)
            return self._already_settled(winner_id)
        order_id = str(created.get("id") or order.id)
        logger.info(
            "orders.verify order_created session_id=%s order_id=%s total=%s",
            session_id, order_id, order.totals.total,
        )

        items = build_items(session)
        items_outcome = self._insert_items(session_id, order_id, items)
        notification_outcome = self._notify(session_id, order_id, order.email, items, order.totals)

        return VerificationResult(
            order_id=order_id,
            already_processed=False,
            state=SettlementState.SETTLED,
            items=items_outcome,
            notification=notification_outcome,
        )

    def _insert_items(self, session_id: str, order_id: str, items: List[OrderItem]) -> StepOutcome:
        if not items:
            logger.warning("orders.verify items_empty session_id=%s order_id=%s", session_id, order_id)
            return StepOutcome.skipped("no line items")
        try:
            count = self.repository.insert_items([item.to_row(order_id) for item in items])
        except Exception as e:
            logger.error(
                "orders.verify items_failed session_id=%s order_id=%s count=%s error=%s",
                session_id, order_id, len(items), e,
            )
            return StepOutcome.failed(str(e))
        logger.info("orders.verify items_created session_id=%s order_id=%s count=%s", session_id, order_id, count)
        return StepOutcome.ok(detail=str(count))

    def _notify(
        self,
        session_id: str,
        order_id: str,
        email: str,
        items: List[OrderItem],
        totals: OrderTotals,
    ) -> StepOutcome:
        if self.notifier is None:
            logger.info("orders.verify email_skipped session_id=%s order_id=%s reason=notifier_disabled", session_id, order_id)
            return StepOutcome.skipped("notifier disabled")
        try:
            outcome = self.notifier.send(email, order_id, items, totals)
        except InvalidRecipient as e:
            logger.warning("orders.verify email_skipped session_id=%s order_id=%s reason=%s", session_id, order_id, e)
            return StepOutcome.skipped(str(e))
        except Exception as e:
            logger.error("orders.verify email_failed session_id=%s order_id=%s error=%s", session_id, order_id, e)
            return StepOutcome.failed(str(e))
        if outcome.status == "ok":
            logger.info("orders.verify email_sent session_id=%s order_id=%s", session_id, order_id)
        elif outcome.status == "skipped":
            logger.info(
                "orders.verify email_skipped session_id=%s order_id=%s reason=%s", session_id, order_id, outcome.detail,
            )
        else:
            logger.error(
                "orders.verify email_failed session_id=%s order_id=%s error=%s", session_id, order_id, outcome.detail,
            )
        return outcome
