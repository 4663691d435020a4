"""Entity-relationship records produced by the schema extractor."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntityType(str, Enum):
    """Semantic role assigned to an entity by the classifier."""
    REFERENCE = "reference"
    TRANSACTIONAL = "transactional"
    ASSOCIATION = "association"
    AUDIT = "audit"
    MANY_TO_MANY_JUNCTION = "many-to-many-junction"


class RelationType(str, Enum):
    """Cardinality of a relation."""
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


# Sentinel stored for defaultNow()
DEFAULT_NOW = "NOW()"


@dataclass
class ColumnReference:
    """Target of a column-level references() modifier."""
    table: str
    column: str
    on_delete: str | None = None  # CASCADE, SET NULL, SET DEFAULT, RESTRICT, NO ACTION
    on_update: str | None = None


@dataclass
class Column:
    """Column reconstructed from a builder chain."""
    name: str
    type: str = "unknown"
    nullable: bool = True
    default_value: str | None = None
    primary_key: bool = False
    unique: bool = False
    length: int | float | None = None
    precision: int | float | None = None
    scale: int | float | None = None
    enum_values: list[str] | None = None
    references: ColumnReference | None = None
    comments: str | None = None


@dataclass
class ForeignKeyTarget:
    table: str
    columns: list[str] = field(default_factory=list)


@dataclass
class ForeignKey:
    """Foreign key, from a column references() or a foreignKey() table extra."""
    columns: list[str]
    references: ForeignKeyTarget
    on_delete: str | None = None
    on_update: str | None = None
    name: str | None = None


@dataclass
class IndexInfo:
    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False
    partial: bool = False
    condition: str | None = None
    type: str | None = None  # btree, hash, gin, gist


@dataclass
class CheckInfo:
    name: str
    expression: str
    columns: list[str] = field(default_factory=list)


@dataclass
class AuditColumns:
    """Columns playing a conventional audit role, by role."""
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None
    version: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Return only the roles that were detected."""
        roles = {
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "deleted_at": self.deleted_at,
            "version": self.version,
        }
        return {role: column for role, column in roles.items() if column}


@dataclass
class Relation:
    """Named relation declared in a relations() helper."""
    name: str
    type: RelationType
    related_table: str
    fields: list[str] | None = None
    references: list[str] | None = None
    relation_name: str | None = None
    is_self_referencing: bool = False
    # Populated only by the many-to-many resolver
    final_target: str | None = None
    junction_table: str | None = None


@dataclass
class Entity:
    """Table declaration with its columns, constraints and relations."""
    name: str
    table_name: str
    columns: list[Column] = field(default_factory=list)
    primary_keys: list[str] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    indexes: list[IndexInfo] = field(default_factory=list)
    checks: list[CheckInfo] = field(default_factory=list)
    relations: list[Relation] | None = None
    comments: str | None = None
    entity_type: EntityType | None = None
    audit_columns: AuditColumns | None = None

    @property
    def foreign_key_count(self) -> int:
        """Number of columns carrying a references() modifier."""
        return sum(1 for col in self.columns if col.references is not None)

    def get_column(self, name: str) -> Column | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None


@dataclass
class ParsedDocument:
    """Result of parsing one source document.

    `relations` holds every relation declaration found in the document keyed
    by the table identifier it describes, including ones whose table is
    declared in another document.
    """
    document_id: str
    entities: list[Entity] = field(default_factory=list)
    relations: dict[str, list[Relation]] = field(default_factory=dict)
    enums: dict[str, list[str]] = field(default_factory=dict)
