"""Tree-sitter parsing and syntax lowering for schema sources."""
from .parsers import create_parser, get_language, language_for_path, parse_source
from .syntax import SourceDocument, VariableDeclaration, lower_document

__all__ = [
    "create_parser",
    "get_language",
    "language_for_path",
    "parse_source",
    "SourceDocument",
    "VariableDeclaration",
    "lower_document",
]
