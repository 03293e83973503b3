"""
Accès aux données pour la feature 'payments' (lecture catalogue 'products').
"""
from typing import Any, Dict, Iterable, List
import logging

logger = logging.getLogger(__name__)

# module storefront.payments.repository
class ProductRepository:
    def __init__(self, client):
        self._client = client

    def fetch_products_by_ids(self, ids: List[str]) -> List[dict]:
        """
        Récupère les produits par leurs IDs (table 'products').
        - Retourne [] si ids vide ou en cas d'erreur (le panier sera alors refusé).
        """
        if not ids:
            return []
        try:
            res = (
                self._client
                .table("products")
                .select("id, name, price, images")
                .in_("id", [str(i) for i in ids])
                .execute()
            )
            return res.data or []
        except Exception:
            logger.exception("payments.repository.fetch_products_by_ids failed ids=%s", ids)
            return []

    def get_products_map(self, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        Retourne un dict {id: produit} à partir d'une liste d'IDs.
        """
        products = self.fetch_products_by_ids(list(dict.fromkeys(ids)))
        return {str(p.get("id")): p for p in products}
