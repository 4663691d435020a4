"""Aggregate statistics over an extraction result."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Mapping

from .models import Entity


@dataclass
class ExtractionStats:
    total_entities: int = 0
    total_documents: int = 0
    entity_types: dict[str, int] = field(default_factory=dict)
    total_relations: int = 0
    relation_types: dict[str, int] = field(default_factory=dict)
    self_referencing: int = 0
    entities_with_relations: int = 0
    audit_columns: list[str] = field(default_factory=list)
    soft_deletes: int = 0
    foreign_keys: int = 0


def summarize_extraction(result: Mapping[str, list[Entity]]) -> ExtractionStats:
    """Summarize entities per document into counts.

    Args:
        result: Extraction result, document id to entities

    Returns:
        ExtractionStats; entity types are counted only for classified
        entities, audit column names are de-duplicated and sorted
    """
    entities = [entity for doc_entities in result.values() for entity in doc_entities]

    entity_types: Counter[str] = Counter()
    relation_types: Counter[str] = Counter()
    audit_columns: set[str] = set()
    stats = ExtractionStats(total_entities=len(entities), total_documents=len(result))

    for entity in entities:
        if entity.entity_type is not None:
            entity_types[entity.entity_type.value] += 1

        if entity.relations:
            stats.entities_with_relations += 1
            for relation in entity.relations:
                stats.total_relations += 1
                relation_types[relation.type.value] += 1
                if relation.is_self_referencing:
                    stats.self_referencing += 1

        if entity.audit_columns is not None:
            detected = entity.audit_columns.as_dict()
            audit_columns.update(detected.values())
            if "deleted_at" in detected:
                stats.soft_deletes += 1

        stats.foreign_keys += entity.foreign_key_count

    stats.entity_types = dict(entity_types)
    stats.relation_types = dict(relation_types)
    stats.audit_columns = sorted(audit_columns)
    return stats
