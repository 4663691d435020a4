"""Tree-sitter parser setup for schema source documents.

Uses the tree-sitter-typescript grammar package. Language objects are cached;
parsers are created per document so no parsing state is shared between
documents.
"""
from __future__ import annotations
from tree_sitter import Language, Parser, Tree
import tree_sitter_typescript


# Cached languages, keyed by our dialect name
_LANGUAGES: dict[str, Language] = {}

# Grammar loaders for each supported source dialect; plain JavaScript
# schema files parse with the TypeScript grammar
_LANGUAGE_LOADERS = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

_SUFFIX_LANGUAGES = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "typescript",
    ".mjs": "typescript",
    ".cjs": "typescript",
    ".tsx": "tsx",
    ".jsx": "tsx",
}


def get_language(language: str) -> Language | None:
    """Get or load the tree-sitter language for a source dialect.

    Args:
        language: Dialect identifier (typescript, tsx)

    Returns:
        Language instance or None if the dialect is not supported
    """
    if language in _LANGUAGES:
        return _LANGUAGES[language]

    loader = _LANGUAGE_LOADERS.get(language)
    if not loader:
        return None

    lang = Language(loader())
    _LANGUAGES[language] = lang
    return lang


def language_for_path(path: str) -> str:
    """Pick the grammar for a file name, defaulting to TypeScript."""
    lowered = path.lower()
    for suffix, language in _SUFFIX_LANGUAGES.items():
        if lowered.endswith(suffix):
            return language
    return "typescript"


def create_parser(language: str = "typescript") -> Parser:
    """Create a fresh parser for one document.

    Raises:
        ValueError: If the dialect is not supported
    """
    lang = get_language(language)
    if lang is None:
        raise ValueError(f"Unsupported source language: {language}")
    return Parser(lang)


def parse_source(source: bytes, language: str = "typescript") -> Tree:
    """Parse source bytes into a tree-sitter tree.

    Tree-sitter recovers from syntax errors, so a tree is always returned;
    erroneous regions show up as ERROR nodes which later stages ignore.
    """
    parser = create_parser(language)
    return parser.parse(source)
