"""
Lancement local: python -m storefront

Variables lues:
- HOST / PORT: adresse d'écoute (0.0.0.0:8000 par défaut)
- UVICORN_RELOAD: reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: partagé avec storefront.config
"""
import os

import uvicorn

from storefront.config import LOG_LEVEL

if __name__ == "__main__":
    uvicorn.run(
        "storefront.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=LOG_LEVEL.lower(),
    )
