"""dashboard_shared.aggregator: Denormalize the Airtable tables into project trees.

Projects are keyed by their project key; every child record (task, team
member, critical item, cashflow event) is attached to the project its
``Project`` link resolves to. Children whose link does not resolve are
dropped. Malformed field values degrade to the per-field defaults declared
in ``field_maps``; nothing in a single record can fail the whole response.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from dashboard_shared.errors import UpstreamFetchError
from dashboard_shared.field_maps import DashboardSchema, FieldSpec, first_linked, project_values
from dashboard_shared.models import ProjectMeta, ProjectTree

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

_MAX_FETCH_WORKERS = 5


def _fields(record: Any) -> Mapping[str, Any]:
    if not isinstance(record, dict):
        return {}
    fields = record.get("fields")
    return fields if isinstance(fields, dict) else {}


class ProjectLookup:
    """Bidirectional record id <-> project key mapping, rebuilt on every request."""

    def __init__(self) -> None:
        self.key_by_id: Dict[str, str] = {}
        self.id_by_key: Dict[str, str] = {}

    @classmethod
    def from_records(
        cls,
        records: Iterable[Record],
        key_spec: FieldSpec,
        field_style: str = "display",
    ) -> "ProjectLookup":
        lookup = cls()
        for record in records:
            record_id = record.get("id") if isinstance(record, dict) else None
            if not record_id:
                continue
            key = str(key_spec.read(_fields(record), field_style) or "").strip()
            if not key:
                continue
            if key in lookup.id_by_key:
                logger.warning(
                    "duplicate project key %r on %s (already bound to %s); ignoring",
                    key, record_id, lookup.id_by_key[key],
                )
                continue
            lookup.key_by_id[record_id] = key
            lookup.id_by_key[key] = record_id
        return lookup

    def key_for(self, linked: Optional[str]) -> Optional[str]:
        """Resolve a linked value: a Projects record id, or the key itself."""
        if not linked:
            return None
        key = self.key_by_id.get(linked)
        if key is not None:
            return key
        if linked in self.id_by_key:
            return linked
        return None

    def id_for(self, project_key: str) -> Optional[str]:
        return self.id_by_key.get(project_key)

    def __len__(self) -> int:
        return len(self.id_by_key)


def aggregate(
    records_by_table: Mapping[str, Sequence[Record]],
    schema: DashboardSchema,
) -> Dict[str, ProjectTree]:
    """Build ``{projectKey: ProjectTree}`` from already-fetched records."""
    style = schema.field_style
    project_records = records_by_table.get(schema.tables.projects) or []
    lookup = ProjectLookup.from_records(project_records, schema.project_key, style)

    projects: Dict[str, ProjectTree] = {}
    for record in project_records:
        key = lookup.key_by_id.get(record.get("id") if isinstance(record, dict) else None)
        if key is None:
            continue
        meta = ProjectMeta.from_values(project_values(_fields(record), schema.project_meta, style))
        projects[key] = ProjectTree(meta=meta)

    for child in schema.children:
        target = child.kind
        dropped = 0
        for record in records_by_table.get(child.table) or []:
            fields = _fields(record)
            linked = None
            for name in child.link_fields:
                linked = first_linked(fields.get(name))
                if linked:
                    break
            key = lookup.key_for(linked)
            if key is None or key not in projects:
                dropped += 1
                continue
            values = project_values(fields, child.fields, style)
            getattr(projects[key], target).append(child.build(record.get("id") or "", values))
        if dropped:
            logger.debug("dropped %s %s record(s) with unresolved project link", dropped, target)

    return projects


def projects_payload(projects: Mapping[str, ProjectTree]) -> Dict[str, Any]:
    return {key: tree.to_dict() for key, tree in projects.items()}


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


def fetch_tables(
    client,
    tables: Sequence[str],
    optional_tables: Iterable[str] = (),
) -> Dict[str, List[Record]]:
    """Fetch ``tables`` concurrently; optional tables degrade to ``[]`` on failure."""
    unique_tables = list(dict.fromkeys(tables))
    optional = set(optional_tables)
    results: Dict[str, List[Record]] = {}
    if not unique_tables:
        return results

    with ThreadPoolExecutor(max_workers=min(len(unique_tables), _MAX_FETCH_WORKERS)) as pool:
        futures = {pool.submit(client.list_records, table): table for table in unique_tables}
        for future in as_completed(futures):
            table = futures[future]
            try:
                results[table] = future.result()
            except UpstreamFetchError as exc:
                if table not in optional:
                    raise
                logger.warning("optional table %s unavailable, serving it empty: %s", table, exc)
                results[table] = []

    logger.info(
        "fetched %s",
        ", ".join(f"{table}={len(results[table])}" for table in unique_tables),
    )
    return results


def build_projects(
    client,
    schema: DashboardSchema,
    optional_tables: Iterable[str] = (),
) -> Dict[str, ProjectTree]:
    records_by_table = fetch_tables(client, schema.table_names(), optional_tables)
    return aggregate(records_by_table, schema)


def load_project_lookup(client, schema: DashboardSchema) -> ProjectLookup:
    """Fresh Projects fetch for the write path."""
    records = client.list_records(schema.tables.projects)
    return ProjectLookup.from_records(records, schema.project_key, schema.field_style)
