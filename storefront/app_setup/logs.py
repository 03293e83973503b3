"""
Configuration des logs applicatifs (loggers storefront.*).
Uvicorn configure ses propres loggers; ici on fixe seulement le niveau et le format du root.
"""
import logging
from storefront.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger("storefront").setLevel(getattr(logging, level, logging.INFO))
