import logging
from typing import Optional

from skillbridge.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the API process."""
    resolved = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # SQL echo is noisy; keep it behind DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG and resolved == "DEBUG" else logging.WARNING
    )
