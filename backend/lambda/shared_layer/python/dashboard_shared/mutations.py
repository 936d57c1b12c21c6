"""dashboard_shared.mutations: Translate simplified write requests into Airtable writes.

Supported intents (``kind`` is ``tasks`` or ``cashflow``):

    create   projectKey required; unspecified fields get their empty/default value
    update   partial: only fields present in the body are sent; empty/null clears
    delete   record id only

``projectKey`` is resolved through a freshly fetched Projects lookup and
written as a linked-record list ``[projectRecordId]``. Request bodies are
validated before any Airtable call so a bad request costs no network.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from dashboard_shared.aggregator import load_project_lookup
from dashboard_shared.errors import UnknownProjectKey, ValidationError
from dashboard_shared.field_maps import (
    AMOUNT,
    DATE,
    LINK,
    NUMBER,
    ChildTable,
    DashboardSchema,
    FieldSpec,
    normalize_date,
    to_number,
)

logger = logging.getLogger(__name__)

WRITABLE_KINDS = ("tasks", "cashflow")

_MISSING = object()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def _request_value(body: Mapping[str, Any], spec: FieldSpec) -> Any:
    for key in spec.request_keys():
        if key in body:
            return body[key]
    return _MISSING


def _cleared_value(spec: FieldSpec) -> Any:
    if spec.kind in (NUMBER, AMOUNT, DATE):
        return None
    if spec.kind == LINK:
        return []
    return ""


def _translate_value(spec: FieldSpec, value: Any) -> Any:
    """Translate one non-blank request value into its Airtable representation."""
    if spec.kind == NUMBER:
        return to_number(value)
    if spec.kind == AMOUNT:
        return to_number(value, strip_currency=True)
    if spec.kind == DATE:
        normalized = normalize_date(value)
        if normalized is None:
            raise ValidationError(f"{spec.key}: must be an ISO date (YYYY-MM-DD), got {value!r}")
        return normalized
    if spec.kind == LINK:
        items = value if isinstance(value, (list, tuple)) else [value]
        return [str(item).strip() for item in items if not _is_blank(item)]
    if isinstance(value, (dict, list, tuple)):
        raise ValidationError(f"{spec.key}: must be a string")
    return str(value)


def build_create_fields(child: ChildTable, body: Mapping[str, Any], field_style: str) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for spec in child.fields:
        if not spec.writable:
            continue
        value = _request_value(body, spec)
        if value is _MISSING or _is_blank(value):
            if spec.kind in (DATE, LINK):
                continue
            fields[spec.backend_name(field_style)] = spec.default
            continue
        fields[spec.backend_name(field_style)] = _translate_value(spec, value)
    return fields


def build_update_fields(child: ChildTable, body: Mapping[str, Any], field_style: str) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for spec in child.fields:
        if not spec.writable:
            continue
        value = _request_value(body, spec)
        if value is _MISSING:
            continue
        if _is_blank(value):
            fields[spec.backend_name(field_style)] = _cleared_value(spec)
        else:
            fields[spec.backend_name(field_style)] = _translate_value(spec, value)
    return fields


def _require_project_key(body: Mapping[str, Any]) -> str:
    raw = body.get("projectKey")
    if _is_blank(raw):
        raise ValidationError("projectKey is required")
    if not isinstance(raw, str):
        raise ValidationError("projectKey must be a string")
    return raw.strip()


def _require_record_id(record_id: Optional[str]) -> str:
    record_id = (record_id or "").strip()
    if not record_id:
        raise ValidationError("record id is required")
    return record_id


class MutationTranslator:
    def __init__(self, client, schema: DashboardSchema) -> None:
        self.client = client
        self.schema = schema

    def _child(self, kind: str) -> ChildTable:
        if kind not in WRITABLE_KINDS:
            raise ValidationError(f"Unsupported resource '{kind}'")
        return self.schema.child(kind)

    def _resolve_project(self, project_key: str) -> str:
        lookup = load_project_lookup(self.client, self.schema)
        project_id = lookup.id_for(project_key)
        if project_id is None:
            raise UnknownProjectKey(project_key)
        return project_id

    # ------------------------------------------------------------------
    # Generic intents
    # ------------------------------------------------------------------

    def create(self, kind: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        child = self._child(kind)
        project_key = _require_project_key(body)
        fields = build_create_fields(child, body, self.schema.field_style)

        project_id = self._resolve_project(project_key)
        fields[child.link_field()] = [project_id]

        created = self.client.create_record(child.table, fields)
        record_id = created.get("id")
        logger.info("created %s record %s for project %s", kind, record_id, project_key)
        return {"id": record_id}

    def update(self, kind: str, record_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        child = self._child(kind)
        record_id = _require_record_id(record_id)
        fields = build_update_fields(child, body, self.schema.field_style)

        project_key = None
        if "projectKey" in body:
            project_key = _require_project_key(body)
        if not fields and project_key is None:
            raise ValidationError(f"No updatable {kind} fields in request body")

        if project_key is not None:
            fields[child.link_field()] = [self._resolve_project(project_key)]

        updated = self.client.update_record(child.table, record_id, fields)
        logger.info("updated %s record %s (fields=%s)", kind, record_id, sorted(fields))
        return {"id": updated.get("id", record_id)}

    def delete(self, kind: str, record_id: str) -> Dict[str, Any]:
        child = self._child(kind)
        record_id = _require_record_id(record_id)
        resp = self.client.delete_record(child.table, record_id)
        logger.info("deleted %s record %s", kind, record_id)
        return {"id": resp.get("id", record_id), "deleted": bool(resp.get("deleted", True))}

    # ------------------------------------------------------------------
    # Named intents
    # ------------------------------------------------------------------

    def create_task(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return self.create("tasks", body)

    def update_task(self, record_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        return self.update("tasks", record_id, body)

    def delete_task(self, record_id: str) -> Dict[str, Any]:
        return self.delete("tasks", record_id)

    def create_cashflow(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return self.create("cashflow", body)

    def update_cashflow(self, record_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        return self.update("cashflow", record_id, body)

    def delete_cashflow(self, record_id: str) -> Dict[str, Any]:
        return self.delete("cashflow", record_id)
