"""Shared pytest fixtures for all tests."""
import pytest
from pathlib import Path

from drizzle_entities import ExtractorConfig, SchemaExtractor
from drizzle_entities.treesitter import lower_document, parse_source

SCHEMA_DIR = Path(__file__).parent / "fixtures" / "schema"


@pytest.fixture(scope="session")
def schema_dir():
    """Directory holding the TypeScript schema fixtures."""
    return SCHEMA_DIR


@pytest.fixture
def extractor():
    """Extractor with built-in defaults, independent of any config file."""
    return SchemaExtractor(ExtractorConfig())


@pytest.fixture
def parse(extractor):
    """Parse an inline source and return its entities keyed by identifier."""
    def _parse(source: str):
        document = extractor.parse_source(source, "inline.ts")
        return {entity.name: entity for entity in document.entities}
    return _parse


@pytest.fixture
def lower():
    """Lower an inline source into declarations."""
    def _lower(source: str):
        data = source.encode("utf-8")
        return lower_document(data, parse_source(data))
    return _lower
