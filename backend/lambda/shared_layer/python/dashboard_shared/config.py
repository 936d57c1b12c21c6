"""dashboard_shared.config: Environment configuration for the dashboard Lambda.

Non-secret settings are read from the environment on every call to
``load_settings`` so a warm container picks up nothing stale from tests or
previous invocations. The Airtable token comes from one of:

    AIRTABLE_TOKEN              personal access token
    AIRTABLE_API_KEY            legacy name for the same value
    AIRTABLE_TOKEN_SECRET_ID    Secrets Manager secret holding the token

Missing credentials raise ``ConfigurationError`` before any Airtable call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dashboard_shared.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "https://api.airtable.com/v0"
DEFAULT_TIMEOUT_SECONDS = 15.0
MAX_PAGE_SIZE = 100
DEFAULT_API_BASE_PATH = "/api/v1/dashboard"
LEGACY_BASE_PATH = "/.netlify/functions/airtable"

FIELD_STYLES = ("display", "compact")
CASHFLOW_TYPE_MODES = ("raw", "direction")


@dataclass(frozen=True)
class TableNames:
    projects: str = "Projects"
    tasks: str = "Tasks"
    team: str = "Team"
    critical: str = "Critical"
    cashflow: str = "Cashflow"


@dataclass(frozen=True)
class Settings:
    base_id: str
    token: str = field(repr=False)
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    page_size: int = MAX_PAGE_SIZE
    tables: TableNames = field(default_factory=TableNames)
    optional_tables: Tuple[str, ...] = ("Cashflow",)
    field_style: str = "display"
    cashflow_type_mode: str = "raw"
    api_base_path: str = DEFAULT_API_BASE_PATH


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _clamp_page_size(raw: str) -> int:
    try:
        size = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"AIRTABLE_PAGE_SIZE must be an integer, got {raw!r}") from exc
    return max(1, min(size, MAX_PAGE_SIZE))


def _resolve_token(env: Mapping[str, str]) -> str:
    token = (env.get("AIRTABLE_TOKEN") or env.get("AIRTABLE_API_KEY") or "").strip()
    if token:
        return token
    secret_id = (env.get("AIRTABLE_TOKEN_SECRET_ID") or "").strip()
    if secret_id:
        # boto3 is only imported when a secret id is configured.
        from dashboard_shared.aws_clients import get_secret_token

        return get_secret_token(secret_id)
    raise ConfigurationError(
        "Missing Airtable credentials: set AIRTABLE_TOKEN (or AIRTABLE_API_KEY / AIRTABLE_TOKEN_SECRET_ID)."
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from the environment, failing fast on missing credentials."""
    env = os.environ if environ is None else environ

    base_id = (env.get("AIRTABLE_BASE_ID") or "").strip()
    if not base_id:
        raise ConfigurationError("Missing Airtable configuration: AIRTABLE_BASE_ID is not set.")
    token = _resolve_token(env)

    field_style = (env.get("FIELD_STYLE") or "display").strip().lower()
    if field_style not in FIELD_STYLES:
        raise ConfigurationError(f"FIELD_STYLE must be one of {list(FIELD_STYLES)}, got {field_style!r}")

    cashflow_type_mode = (env.get("CASHFLOW_TYPE_MODE") or "raw").strip().lower()
    if cashflow_type_mode not in CASHFLOW_TYPE_MODES:
        raise ConfigurationError(
            f"CASHFLOW_TYPE_MODE must be one of {list(CASHFLOW_TYPE_MODES)}, got {cashflow_type_mode!r}"
        )

    raw_timeout = env.get("AIRTABLE_TIMEOUT_SECONDS") or str(DEFAULT_TIMEOUT_SECONDS)
    try:
        timeout_seconds = float(raw_timeout)
    except ValueError as exc:
        raise ConfigurationError(f"AIRTABLE_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}") from exc

    tables = TableNames(
        projects=env.get("TABLE_PROJECTS") or "Projects",
        tasks=env.get("TABLE_TASKS") or "Tasks",
        team=env.get("TABLE_TEAM") or "Team",
        critical=env.get("TABLE_CRITICAL") or "Critical",
        cashflow=env.get("TABLE_CASHFLOW") or "Cashflow",
    )
    optional_raw = env.get("OPTIONAL_TABLES")
    optional_tables = _split_csv(optional_raw) if optional_raw is not None else (tables.cashflow,)

    return Settings(
        base_id=base_id,
        token=token,
        api_url=(env.get("AIRTABLE_API_URL") or DEFAULT_API_URL).rstrip("/"),
        timeout_seconds=timeout_seconds,
        page_size=_clamp_page_size(env.get("AIRTABLE_PAGE_SIZE") or str(MAX_PAGE_SIZE)),
        tables=tables,
        optional_tables=optional_tables,
        field_style=field_style,
        cashflow_type_mode=cashflow_type_mode,
        api_base_path=(env.get("API_BASE_PATH") or DEFAULT_API_BASE_PATH).rstrip("/"),
    )
