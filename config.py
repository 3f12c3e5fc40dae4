import os

DEFAULT_MODEL = os.getenv("FEEDBACK_MODEL", "gpt-4o-mini")


def _sanitize_int(value: str | None, fallback: int) -> int:
    if value is None:
        return fallback
    try:
        parsed = int(value)
        return parsed if parsed > 0 else fallback
    except Exception:
        return fallback


def _sanitize_float(value: str | None, fallback: float) -> float:
    if value is None:
        return fallback
    try:
        parsed = float(value)
        return parsed if parsed >= 0 else fallback
    except Exception:
        return fallback


def _sanitize_flag(value: str | None, fallback: bool) -> bool:
    if value is None:
        return fallback
    v = value.strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return fallback


# Most recent N records fed into a single summary prompt
SUMMARY_ITEM_LIMIT = _sanitize_int(os.getenv("FEEDBACK_SUMMARY_LIMIT"), 12)
# Width of the date range label; a display label only, records are not filtered by it
SUMMARY_WINDOW_HOURS = _sanitize_int(os.getenv("FEEDBACK_WINDOW_HOURS"), 24)

GENERATION_TIMEOUT_S = _sanitize_float(os.getenv("FEEDBACK_GENERATION_TIMEOUT"), 60.0)
GENERATION_TEMPERATURE = _sanitize_float(os.getenv("FEEDBACK_GENERATION_TEMPERATURE"), 0.0)
# Request a JSON object response format; the client retries without it if the backend refuses.
USE_JSON_RESPONSE_FORMAT = _sanitize_flag(os.getenv("FEEDBACK_JSON_MODE"), True)

# Writable locations. On PaaS hosts prefer something like /tmp/feedback_pulse.db
DB_PATH = os.getenv("FEEDBACK_DB_PATH", "feedback_pulse.db")
LOG_PATH = os.getenv("FEEDBACK_LOG_PATH", "feedback_pulse.log")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = _sanitize_int(os.getenv("PORT") or os.getenv("FLASK_RUN_PORT"), 5000)
