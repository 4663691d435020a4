"""Exceptions raised while extracting entities from schema sources.

Neither kind escapes the batch entry points: a StructuralMismatch drops one
declaration, column or relation entry, and a DocumentFailure drops one
document.
"""
from __future__ import annotations


class SchemaExtractionError(Exception):
    """Base class for extraction errors."""


class StructuralMismatch(SchemaExtractionError):
    """A declaration, column or relation entry does not have the expected shape."""


class DocumentFailure(SchemaExtractionError):
    """A whole document could not be read or parsed."""

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"{document_id}: {reason}")
