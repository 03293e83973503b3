# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "notifications" / "templates"

"""
Configuration centrale du backend storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env) sans écraser l'environnement
- Normalise et expose les secrets/URLs (Supabase, Stripe, Resend)
- Paramètres du checkout (devise, frais de port) et de l'email de confirmation
- Timeouts explicites pour chaque appel sortant
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Supabase: URL + clé service-role (écritures orders/order_items côté serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète (obligatoire au démarrage) et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Resend: sans clé, l'email de confirmation est simplement désactivé
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
RESEND_API_URL = _clean_env(os.getenv("RESEND_API_URL") or "https://api.resend.com/emails")
MAIL_FROM = _clean_env(os.getenv("MAIL_FROM") or "SoleDrip <onboarding@resend.dev>")
SUPPORT_EMAIL = _clean_env(os.getenv("SUPPORT_EMAIL") or "support@soledrip.com")
STORE_NAME = _clean_env(os.getenv("STORE_NAME") or "SoleDrip")
STORE_TAGLINE = _clean_env(os.getenv("STORE_TAGLINE") or "Premium Footwear")

# Checkout: montants en unités mineures (paise). Livraison ₹99, offerte dès ₹2,000
CURRENCY = _clean_env(os.getenv("CURRENCY") or "inr").lower()
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
SHIPPING_FEE_MINOR = _int_env("SHIPPING_FEE_MINOR", 9900)
FREE_SHIPPING_THRESHOLD_MINOR = _int_env("FREE_SHIPPING_THRESHOLD_MINOR", 200000)
SHIPPING_COUNTRIES = [c.strip().upper() for c in os.getenv("SHIPPING_COUNTRIES", "IN").split(",") if c.strip()]

# Timeouts (secondes) des appels sortants
STRIPE_TIMEOUT_SECONDS = _float_env("STRIPE_TIMEOUT_SECONDS", 20.0)
SUPABASE_TIMEOUT_SECONDS = _float_env("SUPABASE_TIMEOUT_SECONDS", 10.0)
RESEND_TIMEOUT_SECONDS = _float_env("RESEND_TIMEOUT_SECONDS", 10.0)

# CORS / hôtes
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
# Proxys autorisés à réécrire l'IP client via X-Forwarded-For (même variable que uvicorn)
FORWARDED_ALLOW_IPS = [h.strip() for h in os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1").split(",") if h.strip()]

# Jeton pour les endpoints internes (renvoi d'email de confirmation)
INTERNAL_API_TOKEN = _clean_env(os.getenv("INTERNAL_API_TOKEN") or "")

LOG_LEVEL = _clean_env(os.getenv("LOG_LEVEL") or "info").upper()

