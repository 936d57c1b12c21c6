"""dashboard_shared.errors: Error taxonomy for the dashboard API.

Every error raised on purpose by the shared layer derives from
``DashboardError`` and carries the HTTP status the Lambda boundary should
answer with.
"""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(DashboardError):
    """Required configuration (credentials, base id) is missing."""

    status_code = 500


class ValidationError(DashboardError):
    """The request body is missing a required field or carries a bad value."""

    status_code = 400


class UnknownProjectKey(ValidationError):
    def __init__(self, project_key: str) -> None:
        super().__init__(f"Unknown projectKey '{project_key}' (not found in Projects)")
        self.project_key = project_key


class UpstreamError(DashboardError):
    """Airtable answered with a non-success status (or not at all)."""

    status_code = 500
    operation = "request"

    def __init__(self, table: str, status: Optional[int], body: str) -> None:
        status_label = status if status is not None else "no response"
        super().__init__(f"Airtable {self.operation} failed for '{table}' ({status_label}): {body}")
        self.table = table
        self.status = status
        self.body = body


class UpstreamFetchError(UpstreamError):
    operation = "fetch"


class UpstreamWriteError(UpstreamError):
    operation = "write"


class UnexpectedError(DashboardError):
    status_code = 500
