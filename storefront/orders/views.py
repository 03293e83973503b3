# module storefront.orders.views

"""Endpoints du règlement de commande.
- POST /api/v1/orders/verify: appelé par la page succès avec {sessionId}.
  Réponse: {orderId, success: true} ou {orderId, alreadyProcessed: true}.
Erreurs: {error, code} avec le statut porté par l'erreur (400/502/500), voir app_setup.exceptions.
Le client doit traiter toute erreur comme « commande pas encore confirmée » et proposer
de réessayer: le paiement lui-même a déjà réussi chez Stripe.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from storefront.app_setup.services import get_order_verifier
from storefront.orders.errors import SettlementError
from storefront.orders.service import OrderVerifier
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class VerifyOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")


@router.post("/verify", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def verify_order(body: VerifyOrderRequest, verifier: OrderVerifier = Depends(get_order_verifier)):
    """
    Vérifie la session Stripe et matérialise la commande (idempotent).
    - Endpoint synchrone: exécuté dans le threadpool, les appels Stripe/Supabase/Resend sont bloquants.
    """
    try:
        result = verifier.verify(body.session_id)
    except SettlementError as e:
        logger.error("orders.verify error session_id=%s code=%s message=%s", body.session_id, e.code, e.message)
        raise
    except Exception:
        logger.exception("orders.verify error session_id=%s", body.session_id)
        raise
    return result.to_response()
