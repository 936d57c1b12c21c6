"""dashboard_shared.models: Typed entities of the dashboard response tree.

Each entity knows how to build itself from the projected field values
(``from_values``, keyed by camelCase API name) and how to render itself
for the JSON response (``to_dict``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_IN_KEYWORDS = ("cobro", "ingreso", "inflow", "income", "entrada", "in")
_OUT_KEYWORDS = ("pago", "egreso", "outflow", "expense", "salida", "out")


def normalize_cashflow_type(value: str, mode: str = "raw") -> str:
    """Map a free-form cashflow type to ``in``/``out`` when ``mode`` is ``direction``.

    Values that match neither keyword list are returned unchanged.
    """
    if mode != "direction" or not value:
        return value
    lowered = value.strip().lower()
    for keyword in _IN_KEYWORDS:
        if lowered == keyword or (len(keyword) > 3 and keyword in lowered):
            return "in"
    for keyword in _OUT_KEYWORDS:
        if lowered == keyword or (len(keyword) > 3 and keyword in lowered):
            return "out"
    return value


@dataclass
class ProjectMeta:
    name: str = ""
    subtitle: str = ""
    status_label: str = ""
    client: str = ""
    amount: Any = ""
    start: str = ""
    end: str = ""
    pm: str = ""
    gantt_start: Optional[str] = None
    gantt_end: Optional[str] = None

    @classmethod
    def from_values(cls, values: Dict[str, Any]) -> "ProjectMeta":
        return cls(
            name=values["name"],
            subtitle=values["subtitle"],
            status_label=values["statusLabel"],
            client=values["client"],
            amount=values["amount"],
            start=values["start"],
            end=values["end"],
            pm=values["pm"],
            gantt_start=values["ganttStart"],
            gantt_end=values["ganttEnd"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "subtitle": self.subtitle,
            "statusLabel": self.status_label,
            "client": self.client,
            "amount": self.amount,
            "start": self.start,
            "end": self.end,
            "pm": self.pm,
            "ganttStart": self.gantt_start,
            "ganttEnd": self.gantt_end,
        }


@dataclass
class Task:
    record_id: str
    external_id: Optional[Any] = None
    name: str = ""
    description: str = ""
    owner: str = ""
    status: str = "pending"
    progress: float = 0
    start_date: str = ""
    end_date: str = ""

    @classmethod
    def from_values(cls, record_id: str, values: Dict[str, Any]) -> "Task":
        return cls(
            record_id=record_id,
            external_id=values["id"],
            name=values["name"],
            description=values["description"],
            owner=values["owner"],
            status=values["status"],
            progress=values["progress"],
            start_date=values["startDate"],
            end_date=values["endDate"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recordId": self.record_id,
            "id": self.external_id,
            "name": self.name,
            "description": self.description,
            "owner": self.owner,
            "status": self.status,
            "progress": self.progress,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


@dataclass
class TeamMember:
    name: str = ""
    role: str = ""
    initials: str = ""

    @classmethod
    def from_values(cls, record_id: str, values: Dict[str, Any]) -> "TeamMember":
        return cls(name=values["name"], role=values["role"], initials=values["initials"])

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "role": self.role, "initials": self.initials}


def critical_from_values(record_id: str, values: Dict[str, Any]) -> str:
    return values["item"]


@dataclass
class CashflowEvent:
    record_id: str
    concept: str = ""
    date: str = ""
    type: str = ""
    amount: float = 0
    currency: str = "USD"
    counterparty: str = ""
    status: str = ""
    notes: str = ""
    related_task: Optional[str] = None

    @classmethod
    def from_values(cls, record_id: str, values: Dict[str, Any], type_mode: str = "raw") -> "CashflowEvent":
        return cls(
            record_id=record_id,
            concept=values["concept"],
            date=values["date"],
            type=normalize_cashflow_type(values["type"], type_mode),
            amount=values["amount"],
            currency=values["currency"],
            counterparty=values["counterparty"],
            status=values["status"],
            notes=values["notes"],
            related_task=values["relatedTask"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recordId": self.record_id,
            "concept": self.concept,
            "date": self.date,
            "type": self.type,
            "amount": self.amount,
            "currency": self.currency,
            "counterparty": self.counterparty,
            "status": self.status,
            "notes": self.notes,
            "relatedTask": self.related_task,
        }


@dataclass
class ProjectTree:
    meta: ProjectMeta
    tasks: List[Task] = field(default_factory=list)
    team: List[TeamMember] = field(default_factory=list)
    critical: List[str] = field(default_factory=list)
    cashflow: List[CashflowEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "team": [member.to_dict() for member in self.team],
            "critical": list(self.critical),
            "cashflow": [event.to_dict() for event in self.cashflow],
        }
