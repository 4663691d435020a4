"""Entity extraction from Drizzle schema sources.

Each document is parsed with tree-sitter, lowered, and its tree discarded
before the next document is read. Table, enum and relation declarations are
parsed per document; relation declarations whose table lives in another
document and the many-to-many resolver wait until every document of the
batch has been parsed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

from .classifier import classify_entity, detect_audit_columns
from .columns import parse_columns
from .comments import extract_comments
from .config import ExtractorConfig
from .declarations import DeclarationKind, classify_declaration, parse_enum_declaration
from .errors import DocumentFailure, StructuralMismatch
from .many_to_many import resolve_many_to_many
from .models import Entity, ForeignKey, ForeignKeyTarget, ParsedDocument, Relation
from .relations import parse_relation_declaration
from .table_extras import parse_table_extras
from .treesitter.parsers import language_for_path, parse_source as parse_tree
from .treesitter.syntax import (
    Call,
    FunctionLiteral,
    ObjectLiteral,
    SourceDocument,
    StringLiteral,
    VariableDeclaration,
    lower_document,
    returned_expression,
    unwrap,
)

logger = logging.getLogger(__name__)


class SchemaExtractor:
    """Extracts entities from schema documents.

    Holds configuration only, so one instance can process any number of
    documents or batches.
    """

    def __init__(self, config: ExtractorConfig | None = None):
        self.config = config or ExtractorConfig()

    # Single documents

    def parse_source(
        self,
        source: str | bytes,
        document_id: str = "<source>",
        language: str | None = None
    ) -> ParsedDocument:
        """Parse one document.

        Relations are attached to entities of the same document; the
        many-to-many resolver is not run.

        Args:
            source: Document text
            document_id: Identifier used as the result key and in logs
            language: Grammar to use; guessed from document_id when omitted

        Returns:
            ParsedDocument

        Raises:
            DocumentFailure: If the document cannot be parsed
        """
        if isinstance(source, str):
            try:
                source = source.encode("utf-8")
            except UnicodeEncodeError as e:
                raise DocumentFailure(document_id, f"cannot encode source: {e}") from e

        document = _lower(source, language or language_for_path(document_id), document_id)
        if document.has_errors:
            logger.warning(f"{document_id}: syntax errors, continuing with a partial parse")

        rules = self.config.declarations
        parsed = ParsedDocument(document_id=document_id)
        tables: list[VariableDeclaration] = []
        relation_decls: list[VariableDeclaration] = []

        for decl in document.declarations:
            kind = classify_declaration(decl, rules)
            if kind is DeclarationKind.TABLE:
                tables.append(decl)
            elif kind is DeclarationKind.RELATIONS:
                relation_decls.append(decl)
            elif kind is DeclarationKind.ENUM:
                values = parse_enum_declaration(decl)
                if values is not None:
                    parsed.enums[decl.name] = values

        for decl in tables:
            try:
                entity = self.parse_table(decl, parsed.enums)
            except StructuralMismatch as e:
                logger.debug(f"{document_id}: skipping table {decl.name} at line {decl.line}: {e}")
                continue
            parsed.entities.append(entity)
            _log_entity(entity)

        if self.config.options.extract_relations:
            for decl in relation_decls:
                try:
                    table, relations = parse_relation_declaration(
                        decl, rules, self.config.heuristics
                    )
                except StructuralMismatch as e:
                    logger.debug(f"{document_id}: skipping relations {decl.name} at line {decl.line}: {e}")
                    continue
                if relations:
                    parsed.relations[table] = relations

            attach_relations(parsed.entities, parsed.relations)

        return parsed

    def parse_file(self, path: str | Path, document_id: str | None = None) -> ParsedDocument:
        """Read and parse one schema file.

        Raises:
            DocumentFailure: If the file cannot be read or parsed
        """
        path = Path(path)
        document_id = document_id or str(path)

        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentFailure(document_id, f"cannot read file: {e}") from e

        return self.parse_source(source, document_id, language=language_for_path(path.name))

    def parse_table(
        self,
        decl: VariableDeclaration,
        enums: dict[str, list[str]] | None = None
    ) -> Entity:
        """Build an entity from a table declaration.

        Args:
            decl: A declaration classified as a table declaration
            enums: Enum declarations of the same document

        Returns:
            Entity

        Raises:
            StructuralMismatch: If the table name is missing or empty, or the
                column map is missing
        """
        options = self.config.options
        heuristics = self.config.heuristics

        call = decl.initializer
        if not isinstance(call, Call) or len(call.arguments) < 2:
            raise StructuralMismatch("table builder needs a name and a column map")

        name_arg = unwrap(call.arguments[0])
        if not isinstance(name_arg, StringLiteral):
            raise StructuralMismatch("table name is not a string literal")
        if not name_arg.value:
            raise StructuralMismatch("table name is empty")

        column_map = _column_map(call.arguments[1])
        if column_map is None:
            raise StructuralMismatch("second argument is not a column map")

        entity = Entity(
            name=decl.name,
            table_name=name_arg.value,
            columns=parse_columns(column_map, options.include_comments, enums),
        )
        entity.primary_keys = [col.name for col in entity.columns if col.primary_key]
        entity.foreign_keys = [
            ForeignKey(
                columns=[col.name],
                references=ForeignKeyTarget(table=col.references.table, columns=[col.references.column]),
                on_delete=col.references.on_delete,
                on_update=col.references.on_update,
            )
            for col in entity.columns
            if col.references is not None
        ]

        if len(call.arguments) > 2:
            extras = parse_table_extras(entity.table_name, call.arguments[2])
            entity.indexes = extras.indexes
            entity.checks = extras.checks
            entity.foreign_keys.extend(extras.foreign_keys)

        if options.include_comments:
            entity.comments = extract_comments(decl.statement_comments, decl.comments)

        if options.classify_entities:
            entity.entity_type = classify_entity(
                entity.name,
                entity.table_name,
                entity.columns,
                entity.primary_keys,
                heuristics,
            )

        if options.detect_audit_columns:
            entity.audit_columns = detect_audit_columns(entity.columns, heuristics)

        return entity

    # Batches

    def extract_sources(self, sources: Mapping[str, str | bytes]) -> dict[str, list[Entity]]:
        """Extract entities from in-memory documents keyed by document id.

        Returns:
            Entities per document id, in input and declaration order
        """
        documents = []
        for document_id, source in sources.items():
            try:
                documents.append(self.parse_source(source, document_id))
            except DocumentFailure as e:
                logger.warning(f"Failed to parse {e.document_id}: {e.reason}")
                documents.append(ParsedDocument(document_id=document_id))
        return self._finish(documents)

    def extract_files(
        self,
        paths: Iterable[str | Path],
        root: str | Path | None = None
    ) -> dict[str, list[Entity]]:
        """Extract entities from schema files.

        Args:
            paths: Files to parse, in order
            root: Optional directory that document ids are made relative to

        Returns:
            Entities per document id; unreadable files map to an empty list
        """
        documents = []
        for path in paths:
            document_id = document_id_for(path, root)
            try:
                documents.append(self.parse_file(path, document_id))
            except DocumentFailure as e:
                logger.warning(f"Failed to parse {e.document_id}: {e.reason}")
                documents.append(ParsedDocument(document_id=document_id))
        return self._finish(documents)

    def _finish(self, documents: list[ParsedDocument]) -> dict[str, list[Entity]]:
        """Cross-document steps, run once every document is parsed."""
        all_entities = [entity for doc in documents for entity in doc.entities]

        if self.config.options.extract_relations:
            for doc in documents:
                local_names = {entity.name for entity in doc.entities}
                foreign = {
                    table: relations
                    for table, relations in doc.relations.items()
                    if table not in local_names
                }
                attach_relations(all_entities, foreign, only_missing=True)

            if self.config.options.resolve_many_to_many:
                resolved = resolve_many_to_many(all_entities, self.config.heuristics)
                logger.debug(f"Resolved {resolved} many-to-many relations")

        result: dict[str, list[Entity]] = {}
        for doc in documents:
            result.setdefault(doc.document_id, []).extend(doc.entities)

        logger.info(f"Extracted {len(all_entities)} entities from {len(documents)} documents")
        return result


def attach_relations(
    entities: list[Entity],
    relations_by_table: Mapping[str, list[Relation]],
    only_missing: bool = False
) -> None:
    """Attach relation lists to the entities whose identifier they describe.

    Args:
        entities: Candidate entities
        relations_by_table: Relations keyed by table identifier
        only_missing: Leave entities that already have relations alone
    """
    for entity in entities:
        relations = relations_by_table.get(entity.name)
        if relations is None:
            continue
        if only_missing and entity.relations is not None:
            continue
        entity.relations = relations


def document_id_for(path: str | Path, root: str | Path | None = None) -> str:
    """Result key for a file: its path, relative to root when possible."""
    path = Path(path)
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return str(path)


def extract_entities(
    paths: Iterable[str | Path],
    config: ExtractorConfig | None = None,
    root: str | Path | None = None
) -> dict[str, list[Entity]]:
    """Extract entities from schema files with the given or default config."""
    return SchemaExtractor(config).extract_files(paths, root)


# Helper functions

def _lower(source: bytes, language: str, document_id: str) -> SourceDocument:
    """Parse and lower a document; the tree-sitter tree does not outlive this call."""
    try:
        tree = parse_tree(source, language)
        return lower_document(source, tree)
    except ValueError as e:
        raise DocumentFailure(document_id, f"cannot parse source: {e}") from e


def _column_map(node) -> ObjectLiteral | None:
    """Column map given directly or through the `(t) => ({ ... })` builder form."""
    node = unwrap(node)
    if isinstance(node, FunctionLiteral):
        node = returned_expression(node)
    if isinstance(node, ObjectLiteral):
        return node
    return None


def _log_entity(entity: Entity) -> None:
    logger.debug(
        f"  {entity.name} ({entity.table_name}) [{entity.entity_type.value if entity.entity_type else '-'}]"
        f" columns={len(entity.columns)} pks={len(entity.primary_keys)} fks={entity.foreign_key_count}"
    )
