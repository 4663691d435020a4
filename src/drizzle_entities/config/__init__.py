"""Configuration management for the schema extractor."""
from .extractor import (
    AuditColumnRule,
    DeclarationRules,
    ExtractorConfig,
    HeuristicRules,
    ParsingOptions,
    load_extractor_config,
)

__all__ = [
    "AuditColumnRule",
    "DeclarationRules",
    "ExtractorConfig",
    "HeuristicRules",
    "ParsingOptions",
    "load_extractor_config",
]
