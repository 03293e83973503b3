"""
Client HTTP minimal pour l'API Resend (envoi d'emails transactionnels).
- Session requests réutilisée, Bearer API key, timeout explicite.
- Toute réponse non 2xx ou erreur réseau lève DeliveryFailure.
"""
from typing import Any, Dict, List, Optional
import logging

import requests

from storefront.config import RESEND_API_URL, RESEND_TIMEOUT_SECONDS
from storefront.orders.errors import DeliveryFailure

logger = logging.getLogger(__name__)


class ResendClient:
    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = RESEND_API_URL,
        timeout: float = RESEND_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ValueError("RESEND_API_KEY is required")
        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def send(self, *, sender: str, to: List[str], subject: str, html: str) -> Dict[str, Any]:
        """
        POST /emails {from, to, subject, html}. Retourne le JSON Resend (ex: {"id": "..."}).
        """
        payload = {"from": sender, "to": to, "subject": subject, "html": html}
        try:
            resp = self._session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryFailure(f"Resend injoignable: {e}")
        if resp.status_code >= 400:
            raise DeliveryFailure(f"Resend a refusé l'envoi ({resp.status_code}): {resp.text[:300]}")
        try:
            return resp.json()
        except ValueError:
            return {}
