"""Heuristic entity classification and audit-column detection.

Both are pure functions of an entity's shape and the configured
HeuristicRules; column order never matters.
"""
from __future__ import annotations

from typing import Sequence

from .config import HeuristicRules
from .models import AuditColumns, Column, EntityType

DEFAULT_RULES = HeuristicRules()


def classify_entity(
    name: str,
    table_name: str,
    columns: Sequence[Column],
    primary_keys: Sequence[str],
    rules: HeuristicRules = DEFAULT_RULES
) -> EntityType:
    """Assign a semantic role to an entity.

    Rules are evaluated in order and the first match wins:

    1. many-to-many-junction: a junction marker in the name or table name, or
       at least two key-like columns (`userId`, `post_id`), with few columns
       and no primary key of its own.
    2. association: at least two columns referencing other tables.
    3. audit: name mentions log, audit or history.
    4. reference: a small table with a name/title column, or a name
       mentioning type, status or category.
    5. transactional otherwise.

    Args:
        name: Declared identifier of the table
        table_name: Declared table name string
        columns: Entity columns
        primary_keys: Names of the primary key columns
        rules: Heuristic rules

    Returns:
        The entity type
    """
    lowered_name = name.lower()
    foreign_key_count = sum(1 for col in columns if col.references is not None)
    id_columns = [col for col in columns if rules.is_id_column(col.name)]

    looks_like_junction = (
        rules.has_junction_marker(name, table_name)
        or len(id_columns) >= rules.min_junction_id_columns
    )
    if looks_like_junction and len(columns) <= rules.junction_max_columns and not primary_keys:
        return EntityType.MANY_TO_MANY_JUNCTION

    if foreign_key_count >= rules.association_min_foreign_keys:
        return EntityType.ASSOCIATION

    if any(marker in lowered_name for marker in rules.audit_name_markers):
        return EntityType.AUDIT

    is_lookup = len(columns) <= rules.reference_max_columns and any(
        marker in col.name for col in columns for marker in rules.reference_column_markers
    )
    if is_lookup or any(marker in lowered_name for marker in rules.reference_name_markers):
        return EntityType.REFERENCE

    return EntityType.TRANSACTIONAL


def detect_audit_columns(
    columns: Sequence[Column],
    rules: HeuristicRules = DEFAULT_RULES
) -> AuditColumns:
    """Find conventional audit columns (created/updated/deleted timestamps, version).

    Each column takes the first role whose rule it matches; when several
    columns match the same role the last one wins.
    """
    audit = AuditColumns()
    for col in columns:
        for rule in rules.audit_columns:
            if rule.matches(col.name):
                setattr(audit, rule.role, col.name)
                break
    return audit
