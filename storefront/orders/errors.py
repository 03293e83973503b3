"""
Taxonomie des erreurs du règlement de commande.
- Chaque erreur porte un code stable (champ "code" de la réponse JSON) et un statut HTTP.
- Les erreurs "non fatales" (items, notification) ne remontent jamais jusqu'au client:
  elles sont journalisées et consignées dans le résultat du vérificateur.
"""
from typing import Optional


class SettlementError(Exception):
    code = "settlement_error"
    status_code = 500

    def __init__(self, message: str, *, session_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.session_id = session_id


class InvalidRequest(SettlementError):
    code = "invalid_request"
    status_code = 400


class UpstreamLookupFailure(SettlementError):
    code = "upstream_lookup_failure"
    status_code = 502


class PaymentIncomplete(SettlementError):
    code = "payment_incomplete"
    status_code = 400

    def __init__(self, message: str, *, session_id: Optional[str] = None, payment_status: str = ""):
        super().__init__(message, session_id=session_id)
        self.payment_status = payment_status


class PersistenceFailure(SettlementError):
    code = "persistence_failure"
    status_code = 500


class DuplicateOrder(SettlementError):
    """Violation d'unicité sur orders.stripe_session_id (course entre deux vérifications)."""
    code = "duplicate_order"
    status_code = 409


class ItemPersistenceFailure(SettlementError):
    code = "item_persistence_failure"
    status_code = 500


class NotificationFailure(SettlementError):
    code = "notification_failure"
    status_code = 502


class InvalidRecipient(NotificationFailure):
    code = "invalid_recipient"
    status_code = 400


class DeliveryFailure(NotificationFailure):
    code = "delivery_failure"
    status_code = 502
