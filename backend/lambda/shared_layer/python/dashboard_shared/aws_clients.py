"""dashboard_shared.aws_clients: Secrets Manager access for the Airtable token.

The boto3 client is a lazy singleton and the resolved token is cached for an
hour, so warm invocations do not hit Secrets Manager on every request.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Dict, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from dashboard_shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

SECRETS_REGION: str = os.environ.get("SECRETS_REGION", os.environ.get("AWS_REGION", "us-west-2"))

_secretsmanager = None

_token_cache: Dict[str, Tuple[str, float]] = {}
_TOKEN_TTL: float = 3600.0


def _get_secretsmanager(region: Optional[str] = None):
    """Get (or create) the Secrets Manager client singleton."""
    global _secretsmanager
    if _secretsmanager is None:
        _secretsmanager = boto3.client(
            "secretsmanager",
            region_name=region or SECRETS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _secretsmanager


def _token_from_secret_string(secret_string: str) -> str:
    """Accept either a bare token or a JSON object with a token key."""
    raw = (secret_string or "").strip()
    if raw.startswith("{"):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return raw
        for key in ("token", "AIRTABLE_TOKEN", "apiKey", "AIRTABLE_API_KEY"):
            value = data.get(key)
            if value:
                return str(value).strip()
        return ""
    return raw


def get_secret_token(secret_id: str) -> str:
    """Fetch the Airtable token from Secrets Manager (cached)."""
    now = time.time()
    cached = _token_cache.get(secret_id)
    if cached and (now - cached[1]) < _TOKEN_TTL:
        return cached[0]

    try:
        resp = _get_secretsmanager().get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as exc:
        logger.error("secret lookup failed for %s: %s", secret_id, exc)
        raise ConfigurationError(f"Unable to read Airtable token secret '{secret_id}'.") from exc

    token = _token_from_secret_string(resp.get("SecretString") or "")
    if not token:
        raise ConfigurationError(f"Airtable token secret '{secret_id}' is empty.")
    _token_cache[secret_id] = (token, now)
    return token


def clear_token_cache() -> None:
    _token_cache.clear()
