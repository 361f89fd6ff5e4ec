import logging
import json
import os
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging(app):
    """Configura o logger raiz conforme app.config (arquivo diário + console)."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if app.config.get("DEBUG") else logging.INFO)

    # Evita handlers duplicados quando create_app é chamado várias vezes (testes)
    if getattr(logger, "_dentaldesk_configured", False):
        return logger

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        # Arquivo rotaciona à meia-noite, mantém 14 dias
        handler = TimedRotatingFileHandler(
            filename=os.path.join(log_dir, "dentaldesk.log"),
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    console = logging.StreamHandler()
    console.setFormatter(JsonFormatter())
    logger.addHandler(console)

    logger._dentaldesk_configured = True
    return logger
