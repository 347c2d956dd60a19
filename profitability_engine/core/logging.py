import logging

from profitability_engine.core.config import get_log_level


def configure_logging() -> None:
    """Configure root logging for the service process."""
    level = getattr(logging, get_log_level(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO; one line per coin lookup is noise
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
