import logging
import re

from pythonjsonlogger import jsonlogger

from .config import Settings


class PIIRedactingFilter(logging.Filter):
    _abha_re = re.compile(r"\b\d{2}-\d{4}-\d{4}-\d{4}\b")
    _bearer_re = re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            return True
        msg = self._abha_re.sub("[REDACTED_ABHA]", msg)
        msg = self._bearer_re.sub("Bearer [REDACTED]", msg)
        record.msg = msg
        record.args = ()
        return True


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    handler = logging.StreamHandler()

    if settings.LOG_JSON:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s"
        )

    handler.setFormatter(formatter)
    handler.addFilter(PIIRedactingFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Reduce noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
