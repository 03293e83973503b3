"""
Entrypoint ASGI pour les process managers: uvicorn storefront.asgi:app
Les clients Stripe/Supabase/Resend sont construits au démarrage (lifespan), pas à l'import.
"""
from storefront.app import app

__all__ = ["app"]
