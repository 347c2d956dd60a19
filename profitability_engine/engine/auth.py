"""Snapshot trigger authorization."""

import hmac
import re
from dataclasses import dataclass
from typing import Optional

from profitability_engine.core.config import (
    get_app_env,
    get_cron_secret,
    get_cron_user_agent_marker,
)
from profitability_engine.engine.errors import Unauthorized

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class TriggerCredentials:
    """Everything a caller may present to authorize a run."""

    header_secret: Optional[str] = None
    authorization: Optional[str] = None
    query_secret: Optional[str] = None
    user_agent: Optional[str] = None


def _norm(value: Optional[str]) -> str:
    return (value or "").strip()


def _matches(candidate: str, secret: str) -> bool:
    return bool(candidate) and hmac.compare_digest(candidate.encode(), secret.encode())


def is_authorized(
    credentials: TriggerCredentials,
    secret: Optional[str] = None,
    app_env: Optional[str] = None,
    user_agent_marker: Optional[str] = None,
) -> bool:
    """
    Check a trigger against the configured secret.

    Outside production every trigger is accepted. With a secret configured,
    any one of the x-cron-secret header, a Bearer token or the ?secret= query
    parameter must match. Without one, only the scheduler's user agent is
    trusted.
    """
    env = app_env if app_env is not None else get_app_env()
    if env != "production":
        return True

    expected = _norm(secret if secret is not None else get_cron_secret())
    if expected:
        if _matches(_norm(credentials.header_secret), expected):
            return True
        if _matches(_norm(credentials.query_secret), expected):
            return True
        bearer = _BEARER.match(_norm(credentials.authorization))
        return bool(bearer) and _matches(_norm(bearer.group(1)), expected)

    marker = user_agent_marker if user_agent_marker is not None else get_cron_user_agent_marker()
    return bool(marker) and marker in _norm(credentials.user_agent).lower()


def authorize(credentials: TriggerCredentials, **kwargs) -> None:
    """Raise Unauthorized unless the trigger is allowed."""
    if not is_authorized(credentials, **kwargs):
        raise Unauthorized("Unauthorized")
