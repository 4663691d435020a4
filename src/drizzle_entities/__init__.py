"""Drizzle schema entity extraction.

Builds an entity-relationship model from Drizzle ORM schema sources:
- Detect table, enum and relations() declarations
- Reconstruct column semantics from chained builder calls
- Read indexes, checks and foreign keys from table extras
- Classify entities and detect audit columns
- Resolve many-to-many relations through junction tables
"""
from __future__ import annotations

from .models import (
    AuditColumns,
    CheckInfo,
    Column,
    ColumnReference,
    Entity,
    EntityType,
    ForeignKey,
    ForeignKeyTarget,
    IndexInfo,
    ParsedDocument,
    Relation,
    RelationType,
)

from .errors import (
    DocumentFailure,
    SchemaExtractionError,
    StructuralMismatch,
)

from .config import (
    ExtractorConfig,
    HeuristicRules,
    ParsingOptions,
    load_extractor_config,
)

from .extractor import (
    SchemaExtractor,
    extract_entities,
)

from .classifier import classify_entity, detect_audit_columns
from .many_to_many import resolve_many_to_many
from .stats import ExtractionStats, summarize_extraction

__version__ = "0.1.0"

__all__ = [
    # Models
    "AuditColumns",
    "CheckInfo",
    "Column",
    "ColumnReference",
    "Entity",
    "EntityType",
    "ForeignKey",
    "ForeignKeyTarget",
    "IndexInfo",
    "ParsedDocument",
    "Relation",
    "RelationType",
    # Errors
    "DocumentFailure",
    "SchemaExtractionError",
    "StructuralMismatch",
    # Configuration
    "ExtractorConfig",
    "HeuristicRules",
    "ParsingOptions",
    "load_extractor_config",
    # Extraction
    "SchemaExtractor",
    "extract_entities",
    "classify_entity",
    "detect_audit_columns",
    "resolve_many_to_many",
    # Statistics
    "ExtractionStats",
    "summarize_extraction",
]
