"""Resolve many-to-many relations through junction entities.

Runs once over the complete entity set, after every document has been parsed
and relations attached. A relation `tags: many(postsToTags)` on `posts` is
resolved to `final_target="tags"` with `junction_table="postsToTags"`.
"""
from __future__ import annotations

import logging
from typing import Iterable

from .classifier import DEFAULT_RULES
from .config import HeuristicRules
from .models import Entity, EntityType, RelationType

logger = logging.getLogger(__name__)


def pluralize(name: str) -> str:
    """Simplified English plural: category -> categories, user -> users."""
    if name.endswith("y"):
        return name[:-1] + "ies"
    return name + "s"


def junction_related_tables(
    junction: Entity,
    entities_by_name: dict[str, Entity],
    rules: HeuristicRules = DEFAULT_RULES
) -> list[str]:
    """Tables joined by a junction entity.

    Explicit column references are used when there are at least two;
    otherwise key-like columns are mapped to existing entities by name
    (`postId` -> `posts`).
    """
    references = [col.references.table for col in junction.columns if col.references is not None]
    if len(references) >= 2:
        return references

    related = []
    for col in junction.columns:
        if not rules.is_id_column(col.name):
            continue
        stem = col.name.lower()[:-len(rules.id_suffix)]
        candidate = pluralize(stem)
        if candidate in entities_by_name:
            related.append(candidate)
    return related


def resolve_many_to_many(
    entities: Iterable[Entity],
    rules: HeuristicRules = DEFAULT_RULES
) -> int:
    """Point many-to-many relations at their final target.

    For every junction entity joining at least two tables, each joined
    entity's many-to-many relation targeting the junction gets `final_target`
    (the first other joined table) and `junction_table`. Relations that do
    not fit are left untouched. Running it again produces the same
    assignments.

    Args:
        entities: The whole parsed entity set
        rules: Heuristic rules

    Returns:
        Number of relations resolved
    """
    entities = list(entities)
    entities_by_name: dict[str, Entity] = {}
    for entity in entities:
        # First declaration wins when documents reuse a name
        entities_by_name.setdefault(entity.name, entity)

    resolved: set[tuple[str, str]] = set()
    for junction in entities:
        if junction.entity_type != EntityType.MANY_TO_MANY_JUNCTION:
            continue

        related_tables = junction_related_tables(junction, entities_by_name, rules)
        if len(related_tables) < 2:
            logger.debug(f"Junction {junction.name} joins fewer than two known tables")
            continue

        for source_name in related_tables:
            source = entities_by_name.get(source_name)
            if source is None or not source.relations:
                continue

            relation = next(
                (
                    r for r in source.relations
                    if r.related_table == junction.name and r.type == RelationType.MANY_TO_MANY
                ),
                None,
            )
            if relation is None:
                continue

            other = next((table for table in related_tables if table != source_name), None)
            if other is None:
                continue

            relation.final_target = other
            relation.junction_table = junction.name
            resolved.add((source.name, relation.name))

    return len(resolved)
