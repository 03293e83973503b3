"""
Middlewares transverses de l'application.
- CORSMiddleware: la page succès (autre origine) appelle l'API de vérification.
- TrustedHostMiddleware: limite les hôtes acceptés (défense host header).
- ProxyHeadersMiddleware (si dispo): n'applique X-Forwarded-* que pour les proxys listés dans FORWARDED_ALLOW_IPS.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
try:
    from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
except ImportError:
    ProxyHeadersMiddleware = None
from storefront.config import CORS_ORIGINS, ALLOWED_HOSTS, FORWARDED_ALLOW_IPS

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type", "stripe-signature"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    if ProxyHeadersMiddleware:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=FORWARDED_ALLOW_IPS)
