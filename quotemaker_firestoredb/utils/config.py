import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


GOOGLE_CLOUD_PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT_ID")
LOCAL_ENV = _env_bool("LOCAL_ENV")
TESTING = _env_bool("TESTING")

# Collection cache / orchestrator timings
CACHE_TIMEOUT_SECONDS = _env_float("QUOTEMAKER_CACHE_TIMEOUT_SECONDS", 15 * 60)
REFRESH_INTERVAL_SECONDS = _env_float("QUOTEMAKER_REFRESH_INTERVAL_SECONDS", 10 * 60)
READY_TIMEOUT_SECONDS = _env_float("QUOTEMAKER_READY_TIMEOUT_SECONDS", 30)

# Retry policy
RETRY_MAX_ATTEMPTS = _env_int("QUOTEMAKER_RETRY_MAX_ATTEMPTS", 3)
RETRY_BASE_DELAY_MS = _env_float("QUOTEMAKER_RETRY_BASE_DELAY_MS", 1000)
RETRY_MAX_DELAY_MS = _env_float("QUOTEMAKER_RETRY_MAX_DELAY_MS", 5000)

# Circuit breaker around Firestore reads
CIRCUIT_FAILURE_THRESHOLD = _env_int("QUOTEMAKER_CIRCUIT_FAILURE_THRESHOLD", 2)
CIRCUIT_OPEN_TIMEOUT_SECONDS = _env_float("QUOTEMAKER_CIRCUIT_OPEN_TIMEOUT_SECONDS", 60)
AVAILABILITY_CHECK_INTERVAL_SECONDS = _env_float("QUOTEMAKER_AVAILABILITY_CHECK_INTERVAL_SECONDS", 30)
RECOVERY_BASE_DELAY_SECONDS = _env_float("QUOTEMAKER_RECOVERY_BASE_DELAY_SECONDS", 5)
RECOVERY_MAX_DELAY_SECONDS = _env_float("QUOTEMAKER_RECOVERY_MAX_DELAY_SECONDS", 5 * 60)
MAX_RECOVERY_ATTEMPTS = _env_int("QUOTEMAKER_MAX_RECOVERY_ATTEMPTS", 5)

ERROR_LOG_SIZE = _env_int("QUOTEMAKER_ERROR_LOG_SIZE", 100)

# Secondary REST surface
API_BASE_URL = os.getenv("QUOTEMAKER_API_BASE_URL", "http://localhost:3000")
API_TIMEOUT_SECONDS = _env_float("QUOTEMAKER_API_TIMEOUT_SECONDS", 10)

LOCAL_STORE_PATH = os.getenv("QUOTEMAKER_LOCAL_STORE_PATH", os.path.join("data", "local_store.json"))

# Static context signal, e.g. "admin-panel.html"
PAGE_IDENTITY = os.getenv("QUOTEMAKER_PAGE", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
