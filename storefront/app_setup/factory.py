"""
Factory d'application recommandée pour les entrypoints (ex: storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares
from .exceptions import register_exception_handlers
from .routers import register_routers
from .services import Services

def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base (CORS, TrustedHost, ProxyHeaders)
      - gestionnaires d'exceptions (format {"error", "code"})
      - tous les routers (API v1, health)
    services: injectés par les tests; sinon construits au démarrage par le lifespan.
    """
    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.services = services
    register_basic_middlewares(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
