import secrets
from fastapi import Request, HTTPException
from storefront.config import INTERNAL_API_TOKEN

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

def require_internal_token(request: Request) -> None:
    """
    Protège les endpoints internes (outillage de réconciliation).
    - INTERNAL_API_TOKEN non configuré: endpoint désactivé (403).
    - Comparaison à temps constant.
    """
    expected = INTERNAL_API_TOKEN
    if not expected:
        raise HTTPException(status_code=403, detail="Endpoint interne désactivé")
    provided = request.headers.get(INTERNAL_TOKEN_HEADER, "")
    if not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Jeton interne invalide")
