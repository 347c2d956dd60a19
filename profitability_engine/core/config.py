import os


ENGINE_POLICY_VERSION = "2026.10.0"

REFERENCE_PRICE_SETTINGS_KEY = "BTC_USD_LAST"
REFERENCE_COIN_KEY = "btc"

DEFAULT_ELECTRICITY_USD_PER_KWH = 0.10
DEFAULT_HTTP_TIMEOUT_SECONDS = 8.0
DEFAULT_REFERENCE_UNIT_BASE = 1e12  # NiceHash SHA-256 rates are quoted per TH/s
DEFAULT_COIN_ESTIMATE_CONCURRENCY = 8


def _get_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back on missing or bad values."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value != value or value in (float("inf"), float("-inf")):
        return default
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def get_app_env() -> str:
    """Deployment environment; anything other than production is treated as local."""
    return os.getenv("APP_ENV", "development").strip().lower()


def get_cron_secret() -> str:
    return os.getenv("CRON_SECRET", "").strip()


def get_cron_user_agent_marker() -> str:
    """User-agent substring trusted when no cron secret is configured."""
    return os.getenv("CRON_USER_AGENT_MARKER", "vercel-cron/").strip().lower()


def get_baseline_electricity_usd_per_kwh() -> float:
    value = _get_float("BASELINE_ELECTRICITY_USD_PER_KWH", DEFAULT_ELECTRICITY_USD_PER_KWH)
    return value if value > 0 else DEFAULT_ELECTRICITY_USD_PER_KWH


def get_pool_fee_pct() -> float:
    return min(100.0, max(0.0, _get_float("POOL_FEE_PCT", 0.0)))


def get_hosting_usd_per_day() -> float:
    return max(0.0, _get_float("HOSTING_USD_PER_DAY", 0.0))


def get_snapshot_bucket() -> str:
    """Either "hour" (truncate run timestamps to the hour) or "none"."""
    bucket = os.getenv("SNAPSHOT_BUCKET", "hour").strip().lower()
    return bucket if bucket in ("hour", "none") else "hour"


def get_http_timeout_seconds() -> float:
    value = _get_float("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS)
    return value if value > 0 else DEFAULT_HTTP_TIMEOUT_SECONDS


def get_nicehash_base_url() -> str:
    return os.getenv("NICEHASH_BASE_URL", "https://api2.nicehash.com").rstrip("/")


def get_hashrateno_base_url() -> str:
    return os.getenv("HASHRATENO_BASE_URL", "https://hashrate.no").rstrip("/")


def get_reference_unit_base() -> float:
    value = _get_float("PAYOUT_REFERENCE_UNIT_BASE", DEFAULT_REFERENCE_UNIT_BASE)
    return value if value > 0 else DEFAULT_REFERENCE_UNIT_BASE


def get_coin_estimates_enabled() -> bool:
    return _get_bool("COIN_ESTIMATES_ENABLED", True)


def get_coin_estimate_concurrency() -> int:
    value = int(_get_float("COIN_ESTIMATE_CONCURRENCY", DEFAULT_COIN_ESTIMATE_CONCURRENCY))
    return max(1, min(20, value))


DEFAULT_DATABASE_PATH = "data/profitability.db"


def get_database_path() -> str:
    """SQLite file backing the engine."""
    return os.getenv("DATABASE_PATH", "").strip() or DEFAULT_DATABASE_PATH


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
