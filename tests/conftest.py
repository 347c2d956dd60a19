import pytest


ENGINE_ENV_VARS = (
    "APP_ENV",
    "CRON_SECRET",
    "CRON_USER_AGENT_MARKER",
    "BASELINE_ELECTRICITY_USD_PER_KWH",
    "POOL_FEE_PCT",
    "HOSTING_USD_PER_DAY",
    "SNAPSHOT_BUCKET",
    "PAYOUT_REFERENCE_UNIT_BASE",
    "COIN_ESTIMATES_ENABLED",
    "COIN_ESTIMATE_CONCURRENCY",
    "HTTP_TIMEOUT_SECONDS",
    "NICEHASH_BASE_URL",
    "HASHRATENO_BASE_URL",
    "DATABASE_PATH",
)


@pytest.fixture(autouse=True)
def clean_engine_env(monkeypatch):
    """Every test starts from default configuration."""
    for name in ENGINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
