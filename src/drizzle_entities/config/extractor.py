"""Extractor configuration loading and validation.

Loads YAML configuration for the schema extractor: parsing options, the
grammar markers used to recognise declarations, and the heuristic rule set
used to classify entities and relations.
"""
from __future__ import annotations
import logging
import os
import yaml
from dotenv import load_dotenv
from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# Load .env file
load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/drizzle-entities.yaml")


class ParsingOptions(BaseModel):
    """Which optional extraction stages run."""
    include_comments: bool = Field(True, description="Attach leading comments to entities and columns")
    classify_entities: bool = Field(True, description="Assign an entity type to every entity")
    detect_audit_columns: bool = Field(True, description="Detect created/updated/deleted/version columns")
    extract_relations: bool = Field(True, description="Parse relations() declarations")
    resolve_many_to_many: bool = Field(True, description="Resolve relations through junction entities")


class DeclarationRules(BaseModel):
    """Markers that identify table, enum and relation declarations."""
    table_builder_marker: str = Field("Table", description="Substring of a table builder callee")
    enum_builder_marker: str = Field("Enum", description="Substring of an enum builder callee")
    dialect_markers: list[str] = Field(
        default_factory=lambda: ["pg", "mysql", "sqlite"],
        description="Dialect prefixes; one must appear in a table or enum callee"
    )
    relation_helper: str = Field("relations", description="Exact callee of a relation declaration")
    relations_suffix: str = Field("Relations", description="Suffix stripped to find the owning table")

    @field_validator("dialect_markers")
    @classmethod
    def validate_dialects(cls, v: list[str]) -> list[str]:
        """At least one dialect is needed to recognise any table."""
        if not v:
            raise ValueError("dialect_markers must not be empty")
        return v

    @field_validator("table_builder_marker", "relation_helper", "relations_suffix")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("marker must not be blank")
        return v


class AuditColumnRule(BaseModel):
    """Maps column names to an audit role.

    A column matches when its lower-cased name contains every string in
    `contains_all`, or equals one of `exact`.
    """
    role: Literal["created_at", "updated_at", "deleted_at", "version"]
    contains_all: list[str] = Field(default_factory=list)
    exact: list[str] = Field(default_factory=list)

    def model_post_init(self, __context) -> None:
        """A rule needs at least one way to match."""
        if not self.contains_all and not self.exact:
            raise ValueError(f"audit rule for {self.role} needs contains_all or exact")

    def matches(self, column_name: str) -> bool:
        name = column_name.lower()
        if name in self.exact:
            return True
        return bool(self.contains_all) and all(part in name for part in self.contains_all)


def _default_audit_rules() -> list[AuditColumnRule]:
    return [
        AuditColumnRule(role="created_at", contains_all=["created", "at"]),
        AuditColumnRule(role="updated_at", contains_all=["updated", "at"]),
        AuditColumnRule(role="deleted_at", contains_all=["deleted", "at"]),
        AuditColumnRule(role="version", exact=["version", "_version"]),
    ]


class HeuristicRules(BaseModel):
    """Name and shape heuristics for entity and relation classification.

    The default junction marker "to" also matches names such as "photos".
    """
    junction_markers: list[str] = Field(
        default_factory=lambda: ["to"],
        description="Case-insensitive substrings marking a junction table or relation"
    )
    id_suffix: str = Field("id", description="Lower-case suffix of key-like column names")
    junction_max_columns: int = Field(6, ge=1, description="Max columns of a junction entity")
    min_junction_id_columns: int = Field(2, ge=1, description="Key-like columns implying a junction")
    association_min_foreign_keys: int = Field(2, ge=1, description="Foreign keys implying an association")
    audit_name_markers: list[str] = Field(default_factory=lambda: ["log", "audit", "history"])
    reference_max_columns: int = Field(4, ge=1, description="Max columns of a lookup entity")
    reference_column_markers: list[str] = Field(default_factory=lambda: ["name", "title"])
    reference_name_markers: list[str] = Field(default_factory=lambda: ["type", "status", "category"])
    self_reference_markers: list[str] = Field(default_factory=lambda: ["self", "parent", "child"])
    audit_columns: list[AuditColumnRule] = Field(default_factory=_default_audit_rules)

    @field_validator("id_suffix")
    @classmethod
    def validate_id_suffix(cls, v: str) -> str:
        if not v:
            raise ValueError("id_suffix must not be empty")
        return v.lower()

    @field_validator(
        "junction_markers",
        "audit_name_markers",
        "reference_column_markers",
        "reference_name_markers",
        "self_reference_markers",
    )
    @classmethod
    def validate_markers(cls, v: list[str]) -> list[str]:
        """Blank markers would match every name."""
        if any(not marker for marker in v):
            raise ValueError("markers must not be empty strings")
        return v

    def has_junction_marker(self, *names: str) -> bool:
        """Case-insensitive substring match against any of the names."""
        lowered = [name.lower() for name in names]
        markers = [marker.lower() for marker in self.junction_markers]
        return any(marker in name for marker in markers for name in lowered)

    def is_id_column(self, column_name: str) -> bool:
        """True for key-like columns such as userId, but not for the bare id."""
        name = column_name.lower()
        return name.endswith(self.id_suffix) and name != self.id_suffix


class ExtractorConfig(BaseModel):
    """Complete extractor configuration."""
    options: ParsingOptions = Field(default_factory=ParsingOptions)
    declarations: DeclarationRules = Field(default_factory=DeclarationRules)
    heuristics: HeuristicRules = Field(default_factory=HeuristicRules)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ExtractorConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated ExtractorConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls, env_var: str = "DRIZZLE_ENTITIES_CONFIG") -> ExtractorConfig:
        """Load configuration from path in environment variable.

        Unlike a daemon config every setting has a default, so a missing
        variable and missing default file yield the built-in defaults.

        Args:
            env_var: Environment variable name (default: DRIZZLE_ENTITIES_CONFIG)

        Returns:
            Validated ExtractorConfig instance
        """
        config_path = os.getenv(env_var)

        if not config_path:
            if DEFAULT_CONFIG_PATH.exists():
                return cls.from_yaml(DEFAULT_CONFIG_PATH)
            logger.debug(f"{env_var} not set, using built-in extractor defaults")
            return cls()

        return cls.from_yaml(config_path)

    def log_effective(self) -> None:
        """Log the effective configuration at debug level."""
        config_dict = self.model_dump()
        logger.debug("Effective extractor configuration:")
        logger.debug(f"  Options: {config_dict['options']}")
        logger.debug(f"  Dialects: {config_dict['declarations']['dialect_markers']}")
        logger.debug(f"  Junction markers: {config_dict['heuristics']['junction_markers']}")


def load_extractor_config(config_path: str | Path | None = None) -> ExtractorConfig:
    """Load extractor configuration from file or environment.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated ExtractorConfig instance

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path:
        config = ExtractorConfig.from_yaml(config_path)
    else:
        config = ExtractorConfig.from_env()

    config.log_effective()
    return config
