from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from storefront.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, SUPABASE_TIMEOUT_SECONDS

_service_supabase: Optional[Client] = None

def create_service_supabase(timeout: float = SUPABASE_TIMEOUT_SECONDS) -> Client:
    """
    Construit un client Supabase service-role (bypass RLS) avec timeout PostgREST explicite.
    À appeler au démarrage (lifespan) puis à injecter dans les repositories.
    """
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL manquant pour create_service_supabase()")
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour create_service_supabase()")
    return create_client(
        SUPABASE_URL,
        SUPABASE_SERVICE_KEY,
        options=ClientOptions(postgrest_client_timeout=timeout),
    )

def get_service_supabase() -> Client:
    global _service_supabase
    if _service_supabase is None:
        _service_supabase = create_service_supabase()
    return _service_supabase
