from urllib.parse import urlparse
import socket
from storefront.config import SUPABASE_URL

HEALTH_TABLES = ("orders", "order_items", "products")

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info(client) -> dict:
    effective_url = SUPABASE_URL
    parsed = urlparse(effective_url) if effective_url else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": effective_url,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    if client is None:
        info["error"] = "client Supabase non initialisé"
        return info
    for t in HEALTH_TABLES:
        info["tables"][t] = _check_table(client, t)
    info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    return info
