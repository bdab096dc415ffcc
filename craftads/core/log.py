# FILE: craftads/core/log.py
import logging
import os

from craftads.core.config import LOG_DIR, LOG_LEVEL

LEDGER_LOGGER = "craftads.ledger"


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # balance mutations also go to their own file
    os.makedirs(LOG_DIR, exist_ok=True)
    ledger_logger = logging.getLogger(LEDGER_LOGGER)
    if not ledger_logger.handlers:
        handler = logging.FileHandler(os.path.join(LOG_DIR, "ledger.log"))
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        ledger_logger.setLevel(logging.INFO)
        ledger_logger.addHandler(handler)
