"""Thin httpx wrappers shared by the upstream feeds."""

from typing import Any, Optional

import httpx

from profitability_engine.core.config import get_http_timeout_seconds


USER_AGENT = "profitability-engine/1.0"


def fetch_json(url: str, timeout: Optional[float] = None, headers: Optional[dict] = None) -> Any:
    """GET a JSON document; raises httpx errors or ValueError on bad bodies."""
    response = httpx.get(
        url,
        timeout=timeout if timeout is not None else get_http_timeout_seconds(),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})},
    )
    response.raise_for_status()
    return response.json()


def fetch_text(url: str, timeout: Optional[float] = None, headers: Optional[dict] = None) -> str:
    """GET a text document (HTML pages)."""
    response = httpx.get(
        url,
        timeout=timeout if timeout is not None else get_http_timeout_seconds(),
        headers={"User-Agent": "Mozilla/5.0", "Accept": "text/html", **(headers or {})},
        follow_redirects=True,
    )
    response.raise_for_status()
    return response.text
