# --- shopdesk/utils/log.py ---
import logging

from flask.logging import default_handler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app):
    """app.logger is the "shopdesk" logger, so every shopdesk.* module logger
    propagates into Flask's handler."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    default_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app.logger.setLevel(level)

    # Suppress noisy library loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
