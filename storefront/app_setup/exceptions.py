"""
Gestionnaires d'exceptions.
- SettlementError -> {"error": message, "code": code} avec le statut de l'erreur
  (400 InvalidRequest/PaymentIncomplete, 502 UpstreamLookupFailure, 500 PersistenceFailure).
- Erreurs de validation du body -> 400 invalid_request (même format).
- HTTPException (FastAPI et Starlette, ex: 404) -> {"error": detail}.
- Exceptions inattendues -> 500 {"error": ...}, journalisées avec la stack.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.orders.errors import InvalidRequest, SettlementError

logger = logging.getLogger(__name__)

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors() or []
    if not errors:
        return "Requête invalide"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"Requête invalide: {loc} {first.get('msg', '')}".strip()

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers JSON de l'API.
    """
    @app.exception_handler(SettlementError)
    async def settlement_error_handler(request: Request, exc: SettlementError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=InvalidRequest.status_code,
            content={"error": _validation_message(exc), "code": InvalidRequest.code},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("api.unexpected_error path=%s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Erreur interne"})
