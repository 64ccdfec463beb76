"""
Catalogue of the entity kinds served by the API.

Each kind describes its table, its columns and how its change events are
named. The persistence, fan-out and routing layers are all generic over
``EntityKind``; adding a kind means adding an entry to ``ENTITY_KINDS``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Mapping, Tuple

from .models import ChangeEventType, EntityKindInfo

# Column kind -> SQLite declared type
SQL_TYPES: Dict[str, str] = {
    "text": "TEXT",
    "integer": "INTEGER",
    "real": "REAL",
    "boolean": "INTEGER",
    "json": "TEXT",
    "timestamp": "TEXT",
}


@dataclass(frozen=True)
class Column:
    name: str
    kind: str = "text"
    nullable: bool = True

    def ddl(self) -> str:
        constraint = "" if self.nullable else " NOT NULL"
        return f"{self.name} {SQL_TYPES[self.kind]}{constraint}"


@dataclass(frozen=True)
class EntityKind:
    """
    Static description of one entity kind.

    Attributes:
        name: Snake-case kind name, used for topics and live event names
        label: Human-readable singular label used in response messages
        path: URL path segment the kind is mounted under
        table: Backing table name
        columns: Mutable domain attributes (id and timestamps are implicit)
        broadcast_enabled: Whether mutations are pushed to live subscribers
    """

    name: str
    label: str
    path: str
    table: str
    columns: Tuple[Column, ...]
    broadcast_enabled: bool = True

    @property
    def topic(self) -> str:
        return f"{self.name}_events"

    @property
    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"

    @property
    def deleted_message(self) -> str:
        return f"{self.label} deleted"

    def live_event_name(self, event_type: ChangeEventType) -> str:
        return f"{self.name}_{event_type.past_tense}"

    def to_info(self) -> EntityKindInfo:
        return EntityKindInfo(
            name=self.name,
            path=self.path,
            topic=self.topic,
            broadcast_enabled=self.broadcast_enabled,
            attributes=list(self.attribute_names),
        )


CLIENT = EntityKind(
    name="client",
    label="Client",
    path="clients",
    table="clients",
    columns=(
        Column("last_name", nullable=False),
        Column("first_name", nullable=False),
        Column("street_address"),
        Column("city"),
        Column("state"),
        Column("zip"),
        Column("tags", "json"),
        Column("phone"),
        Column("email"),
        Column("tax_exempt", "boolean"),
        Column("admin_notes"),
        Column("team_notes"),
        Column("latitude", "real"),
        Column("longitude", "real"),
        Column("plantation_id", "integer"),
        Column("weekly", "boolean"),
        Column("client_type"),
        Column("payment_method"),
        Column("credit_card_number"),
        Column("credit_card_expiry"),
        Column("credit_card_cvv"),
        Column("billing_address_same", "boolean"),
        Column("billing_street_address"),
        Column("billing_city"),
        Column("billing_state"),
        Column("billing_zip"),
    ),
)

JOB = EntityKind(
    name="job",
    label="Job",
    path="jobs",
    table="jobs",
    columns=(
        Column("client_id", "integer"),
        Column("job_type_id", "integer"),
        Column("title", nullable=False),
        Column("description"),
        Column("scheduled_date", "timestamp"),
        Column("status"),
        Column("price", "real"),
        Column("completed", "boolean"),
        Column("notes"),
    ),
)

JOB_TYPE = EntityKind(
    name="job_type",
    label="Job type",
    path="job-types",
    table="job_types",
    columns=(
        Column("name", nullable=False),
        Column("description"),
        Column("default_price", "real"),
        Column("estimated_minutes", "integer"),
        Column("color"),
    ),
)

PLANTATION = EntityKind(
    name="plantation",
    label="Plantation",
    path="plantations",
    table="plantations",
    columns=(
        Column("name", nullable=False),
        Column("street_address"),
        Column("city"),
        Column("state"),
        Column("zip"),
        Column("notes"),
    ),
)

TEAM = EntityKind(
    name="team",
    label="Team",
    path="teams",
    table="teams",
    columns=(
        Column("name", nullable=False),
        Column("color"),
        Column("active", "boolean"),
        Column("notes"),
    ),
)

TEAM_MEMBER = EntityKind(
    name="team_member",
    label="Team member",
    path="team-members",
    table="team_members",
    columns=(
        Column("team_id", "integer"),
        Column("first_name", nullable=False),
        Column("last_name", nullable=False),
        Column("phone"),
        Column("email"),
        Column("role"),
        Column("active", "boolean"),
    ),
)

TEAM_ASSIGNMENT = EntityKind(
    name="team_assignment",
    label="Team assignment",
    path="team-assignments",
    table="team_assignments",
    columns=(
        Column("team_id", "integer", nullable=False),
        Column("job_id", "integer", nullable=False),
        Column("assigned_date", "timestamp"),
        Column("notes"),
    ),
)

ENTITY_KINDS: Tuple[EntityKind, ...] = (
    CLIENT,
    JOB,
    JOB_TYPE,
    PLANTATION,
    TEAM,
    TEAM_MEMBER,
    TEAM_ASSIGNMENT,
)


def configure_kinds(broadcast_flags: Mapping[str, bool]) -> Tuple[EntityKind, ...]:
    """Apply per-kind broadcast flags; kinds missing from the mapping keep their default."""
    return tuple(
        replace(kind, broadcast_enabled=bool(broadcast_flags.get(kind.name, kind.broadcast_enabled)))
        for kind in ENTITY_KINDS
    )
