"""dashboard_shared.field_maps: Translation tables between API and Airtable names.

One tuple of ``FieldSpec`` per entity kind declares the camelCase name used
by the dashboard API, the Airtable field name in each naming style, the
value kind and the default used when the field is missing or malformed.

Two naming styles exist in the wild:

    display   "Project Key", "Start Date", "Gantt Start", critical "Text"
    compact   "projectKey", "StartDate", "ganttStart", critical "Item"

Reads accept either style (primary style first); writes use the primary.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from dashboard_shared.config import TableNames
from dashboard_shared.models import CashflowEvent, Task, TeamMember, critical_from_values

TEXT = "text"
NUMBER = "number"
AMOUNT = "amount"
DATE = "date"
LINK = "link"
RAW = "raw"

_CURRENCY_NOISE = re.compile(r"[^0-9.\-]")
_PROJECT_LINK_FIELDS = ("Project",)


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def to_number(value: Any, *, strip_currency: bool = False) -> float:
    """Best-effort numeric coercion; anything unparseable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if strip_currency:
            text = _CURRENCY_NOISE.sub("", text)
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    else:
        return 0
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return 0
        if number.is_integer():
            return int(number)
    return number


def normalize_date(value: Any) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for an ISO date/datetime, or None if it cannot be read.

    Timezone-aware datetimes are converted to UTC before the date is taken.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value.isoformat()
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            if len(text) == 10:
                return date.fromisoformat(text).isoformat()
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def first_linked(value: Any) -> Optional[str]:
    """Reduce a linked-record value (list or scalar) to its first identifier."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        # Collaborator cells come back as {"id", "email", "name"}.
        return str(value.get("name") or value.get("email") or "")
    if isinstance(value, (list, tuple)):
        return ", ".join(part for part in (_as_text(v) for v in value) if part)
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == ()


# ---------------------------------------------------------------------------
# Field specs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    key: str
    display: str
    compact: Optional[str] = None
    kind: str = TEXT
    default: Any = ""
    aliases: Tuple[str, ...] = ()
    writable: bool = True

    def backend_names(self, style: str = "display") -> Tuple[str, ...]:
        compact = self.compact or self.display
        ordered = (compact, self.display) if style == "compact" else (self.display, compact)
        return tuple(dict.fromkeys(ordered))

    def backend_name(self, style: str = "display") -> str:
        return self.backend_names(style)[0]

    def request_keys(self) -> Tuple[str, ...]:
        return (self.key,) + self.aliases

    def read(self, fields: Mapping[str, Any], style: str = "display") -> Any:
        """Read this field from an Airtable ``fields`` mapping, degrading to the default."""
        raw = None
        for name in self.backend_names(style):
            if not _is_blank(fields.get(name)):
                raw = fields[name]
                break
        if raw is None:
            return self.default

        if self.kind == NUMBER:
            return to_number(raw)
        if self.kind == AMOUNT:
            return to_number(raw, strip_currency=True)
        if self.kind == DATE:
            normalized = normalize_date(raw)
            return normalized if normalized is not None else self.default
        if self.kind == LINK:
            linked = first_linked(raw)
            return linked if linked is not None else self.default
        if self.kind == RAW:
            return raw
        return _as_text(raw)


def project_values(fields: Mapping[str, Any], specs: Tuple[FieldSpec, ...], style: str) -> Dict[str, Any]:
    return {spec.key: spec.read(fields, style) for spec in specs}


PROJECT_KEY = FieldSpec("projectKey", "Project Key", "projectKey")

PROJECT_META_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("name", "Name", "name"),
    FieldSpec("subtitle", "Subtitle", "subtitle"),
    FieldSpec("statusLabel", "Status Label", "statusLabel"),
    FieldSpec("client", "Client", "client"),
    FieldSpec("amount", "Amount", "amount", kind=RAW),
    FieldSpec("start", "Start Display", "start"),
    FieldSpec("end", "End Display", "end"),
    FieldSpec("pm", "PM", "pm"),
    FieldSpec("ganttStart", "Gantt Start", "ganttStart", kind=DATE, default=None),
    FieldSpec("ganttEnd", "Gantt End", "ganttEnd", kind=DATE, default=None),
)

TASK_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("id", "Task ID", "TaskID", kind=RAW, default=None, writable=False),
    FieldSpec("name", "Name"),
    FieldSpec("description", "Description"),
    FieldSpec("owner", "Owner"),
    FieldSpec("status", "Status", default="pending"),
    FieldSpec("progress", "Progress", kind=NUMBER, default=0),
    FieldSpec("startDate", "Start Date", "StartDate", kind=DATE),
    FieldSpec("endDate", "End Date", "EndDate", kind=DATE),
)

TEAM_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("name", "Name"),
    FieldSpec("role", "Role"),
    FieldSpec("initials", "Initials"),
)

CRITICAL_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("item", "Text", "Item"),
)

CASHFLOW_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("concept", "Concept", aliases=("name",)),
    FieldSpec("date", "Date", kind=DATE),
    FieldSpec("type", "Type"),
    FieldSpec("amount", "Amount", kind=AMOUNT, default=0),
    FieldSpec("currency", "Currency", default="USD"),
    FieldSpec("counterparty", "Counterparty", aliases=("party",)),
    FieldSpec("status", "Status"),
    FieldSpec("notes", "Notes"),
    FieldSpec("relatedTask", "Related Task", "RelatedTask", kind=LINK, default=None),
)


# ---------------------------------------------------------------------------
# Child-table descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChildTable:
    """One child table: where it lives, how it links, where it lands, how it projects."""

    kind: str
    table: str
    fields: Tuple[FieldSpec, ...]
    build: Callable[[str, Dict[str, Any]], Any]
    link_fields: Tuple[str, ...] = _PROJECT_LINK_FIELDS

    def link_field(self) -> str:
        return self.link_fields[0]


@dataclass(frozen=True)
class DashboardSchema:
    tables: TableNames
    field_style: str
    children: Tuple[ChildTable, ...]
    project_key: FieldSpec = PROJECT_KEY
    project_meta: Tuple[FieldSpec, ...] = PROJECT_META_FIELDS
    children_by_kind: Dict[str, ChildTable] = field(default_factory=dict, compare=False)

    def child(self, kind: str) -> ChildTable:
        return self.children_by_kind[kind]

    def table_names(self) -> Tuple[str, ...]:
        return (self.tables.projects,) + tuple(child.table for child in self.children)


def build_schema(
    tables: Optional[TableNames] = None,
    field_style: str = "display",
    cashflow_type_mode: str = "raw",
) -> DashboardSchema:
    tables = tables or TableNames()
    children = (
        ChildTable("tasks", tables.tasks, TASK_FIELDS, Task.from_values),
        ChildTable("team", tables.team, TEAM_FIELDS, TeamMember.from_values),
        ChildTable("critical", tables.critical, CRITICAL_FIELDS, critical_from_values),
        ChildTable(
            "cashflow",
            tables.cashflow,
            CASHFLOW_FIELDS,
            partial(CashflowEvent.from_values, type_mode=cashflow_type_mode),
        ),
    )
    return DashboardSchema(
        tables=tables,
        field_style=field_style,
        children=children,
        children_by_kind={child.kind: child for child in children},
    )


def schema_from_settings(settings) -> DashboardSchema:
    return build_schema(settings.tables, settings.field_style, settings.cashflow_type_mode)
