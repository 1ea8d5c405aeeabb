"""Environment-derived configuration. Do not depend on other app modules."""
import os
import logging.config

from dotenv import load_dotenv


load_dotenv()


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return int(v) if v else default


AGENT_COUNT = _env_int("WAREHOUSE_AGENT_COUNT", 3)
UNITS_PER_TYPE = _env_int("WAREHOUSE_UNITS_PER_TYPE", 10)
LOG_LIMIT = _env_int("WAREHOUSE_LOG_LIMIT", 50)
CHAT_MAX_HISTORY = _env_int("WAREHOUSE_CHAT_MAX_HISTORY", 200)
SETTLE_MAX_STEPS = _env_int("WAREHOUSE_SETTLE_MAX_STEPS", 1000)
PORT = _env_int("PORT", 8081)

RATE_LIMIT = os.getenv("WAREHOUSE_RATE_LIMIT", "120/minute")
LOG_FORMAT = os.getenv("WAREHOUSE_LOG_FORMAT", "json").strip().lower()


_FORMATTERS = {
    "plain": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
}
if LOG_FORMAT == "json":
    _FORMATTERS["json"] = {
        "()": "pythonjsonlogger.json.JsonFormatter",
        "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s",
    }

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": _FORMATTERS,
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "json" if LOG_FORMAT == "json" else "plain",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "root": {
            "level": "INFO",
            "handlers": ["stdout"],
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger("warehouse_service")
