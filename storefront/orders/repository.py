"""
Accès aux données pour la feature 'orders' (tables orders / order_items).
- Client Supabase service-role injecté (bypass RLS: écritures côté serveur uniquement).
- Contrairement aux lectures best-effort, les écritures lèvent: l'appelant décide
  de ce qui est fatal (order) ou non (items).
"""
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

from storefront.orders.errors import DuplicateOrder, ItemPersistenceFailure, PersistenceFailure

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"
UNIQUE_VIOLATION = "23505"

# module storefront.orders.repository
def _is_unique_violation(error: APIError) -> bool:
    code = str(getattr(error, "code", "") or "")
    if code == UNIQUE_VIOLATION:
        return True
    message = str(getattr(error, "message", "") or error)
    return "duplicate key" in message and "stripe_session_id" in message


class OrderRepository:
    """
    Repository des commandes.
    - find_order_id_by_session: lecture rapide d'idempotence
    - insert_order: DuplicateOrder si stripe_session_id existe déjà (contrainte UNIQUE)
    - insert_items: insertion groupée des lignes
    """

    def __init__(self, client):
        self._client = client

    def find_order_id_by_session(self, session_id: str) -> Optional[str]:
        """
        Retourne l'id de la commande liée à la session Stripe, ou None.
        Erreurs: PersistenceFailure si la lecture échoue (on ne présume jamais "introuvable").
        """
        try:
            res = (
                self._client
                .table(ORDERS_TABLE)
                .select("id")
                .eq("stripe_session_id", session_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository.find_order_id_by_session failed session_id=%s", session_id)
            raise PersistenceFailure(f"Lecture de commande impossible: {e}", session_id=session_id)
        rows = res.data or []
        return str(rows[0]["id"]) if rows else None

    def insert_order(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insère une ligne 'orders' et retourne la ligne créée.
        """
        session_id = row.get("stripe_session_id")
        try:
            res = self._client.table(ORDERS_TABLE).insert(row).execute()
        except APIError as e:
            if _is_unique_violation(e):
                logger.info("orders.repository.insert_order duplicate session_id=%s", session_id)
                raise DuplicateOrder("Commande déjà créée pour cette session", session_id=session_id)
            logger.error("orders.repository.insert_order failed session_id=%s error=%s", session_id, e)
            raise PersistenceFailure(f"Création de la commande impossible: {e}", session_id=session_id)
        except Exception as e:
            logger.exception("orders.repository.insert_order failed session_id=%s", session_id)
            raise PersistenceFailure(f"Création de la commande impossible: {e}", session_id=session_id)
        rows = res.data or []
        return rows[0] if rows else dict(row)

    def insert_items(self, rows: List[Dict[str, Any]]) -> int:
        """
        Insertion groupée dans 'order_items'. Retourne le nombre de lignes écrites.
        Erreurs: ItemPersistenceFailure (traitée comme non fatale par le vérificateur).
        """
        if not rows:
            return 0
        order_id = rows[0].get("order_id")
        try:
            self._client.table(ORDER_ITEMS_TABLE).insert(rows).execute()
        except Exception as e:
            raise ItemPersistenceFailure(f"Insertion des lignes impossible (order_id={order_id}): {e}")
        return len(rows)
