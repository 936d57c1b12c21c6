"""dashboard_api/lambda_function.py

Lambda API handler for the project dashboard. Reads the Airtable base
(Projects, Tasks, Team, Critical, Cashflow) into one nested tree keyed by
project key, and passes Task / Cashflow writes through to Airtable.

Routes (via API Gateway proxy, relative to API_BASE_PATH):
    GET     /  or /projects               -> {ok, projects: {[projectKey]: {meta,tasks,team,critical,cashflow}}}
    POST    /tasks                         Create task
    PATCH   /tasks/{recordId}              Partial task update
    DELETE  /tasks/{recordId}              Delete task
    POST    /cashflow                      Create cashflow event
    PATCH   /cashflow/{recordId}           Partial cashflow update
    DELETE  /cashflow/{recordId}           Delete cashflow event
    OPTIONS *                              CORS preflight

Environment variables:
    AIRTABLE_BASE_ID            required
    AIRTABLE_TOKEN              required unless AIRTABLE_API_KEY / AIRTABLE_TOKEN_SECRET_ID is set
    API_BASE_PATH               default: /api/v1/dashboard
    OPTIONAL_TABLES             default: Cashflow
    FIELD_STYLE                 default: display
    CASHFLOW_TYPE_MODE          default: raw
    LOG_LEVEL                   default: INFO

Requires the dashboard_shared layer.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from dashboard_shared.aggregator import build_projects, projects_payload
from dashboard_shared.airtable_client import AirtableClient
from dashboard_shared.config import Settings, load_settings
from dashboard_shared.errors import DashboardError, UnexpectedError
from dashboard_shared.field_maps import DashboardSchema, schema_from_settings
from dashboard_shared.http_utils import _error, _json_body, _ok, _parse_route, _path_method, _preflight
from dashboard_shared.mutations import WRITABLE_KINDS, MutationTranslator

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())


def _build_client(settings: Settings) -> AirtableClient:
    return AirtableClient.from_settings(settings)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_projects(client: AirtableClient, schema: DashboardSchema, settings: Settings) -> Dict:
    projects = build_projects(client, schema, settings.optional_tables)
    return _ok(projects=projects_payload(projects))


def _handle_write(
    method: str,
    resource: str,
    record_id: str,
    event: Dict[str, Any],
    translator: MutationTranslator,
) -> Dict:
    if method == "POST" and not record_id:
        return _ok(record=translator.create(resource, _json_body(event)))
    if method == "PATCH" and record_id:
        return _ok(record=translator.update(resource, record_id, _json_body(event)))
    if method == "DELETE" and record_id:
        return _ok(deleted=translator.delete(resource, record_id))
    return _error(404, "Route not found")


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict, context: Any) -> Dict:
    method, path = _path_method(event)

    # CORS preflight
    if method == "OPTIONS":
        return _preflight()

    try:
        settings = load_settings()
        resource, record_id = _parse_route(path, settings.api_base_path)
        logger.info("dashboard request: method=%s path=%s resource=%s", method, path, resource)

        if resource is None:
            return _error(404, "Route not found")

        schema = schema_from_settings(settings)

        if method == "GET" and resource in ("", "projects") and not record_id:
            return _handle_projects(_build_client(settings), schema, settings)

        if resource in WRITABLE_KINDS:
            translator = MutationTranslator(_build_client(settings), schema)
            return _handle_write(method, resource, record_id, event, translator)

        return _error(404, "Route not found")

    except DashboardError as exc:
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        else:
            logger.warning("%s: %s", type(exc).__name__, exc.message)
        return _error(exc.status_code, exc.message)
    except Exception as exc:
        logger.exception("unexpected error handling %s %s", method, path)
        wrapped = UnexpectedError(str(exc) or type(exc).__name__)
        return _error(wrapped.status_code, wrapped.message)
