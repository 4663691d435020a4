"""Tests for entity classification and audit-column detection."""
import random

import pytest

from drizzle_entities import EntityType, HeuristicRules
from drizzle_entities.classifier import classify_entity, detect_audit_columns
from drizzle_entities.models import Column, ColumnReference


def _col(name, references=None, primary_key=False):
    ref = ColumnReference(table=references, column="id") if references else None
    return Column(name=name, references=ref, primary_key=primary_key)


def _classify(name, columns, table_name=None, rules=None):
    primary_keys = [col.name for col in columns if col.primary_key]
    args = (name, table_name or name, columns, primary_keys)
    return classify_entity(*args, rules) if rules else classify_entity(*args)


# =============================================================================
# Classification Rule Tests
# =============================================================================

class TestClassifyEntity:
    """Test the ordered classification rules."""

    def test_junction_by_marker(self):
        """Should classify a keyless table with a junction marker as junction."""
        columns = [_col("postId", "posts"), _col("tagId", "tags")]
        assert _classify("postsToTags", columns) == EntityType.MANY_TO_MANY_JUNCTION

    def test_junction_by_id_columns(self):
        """Should classify a keyless table with two key-like columns as junction."""
        columns = [_col("userId"), _col("group_id"), _col("role")]
        assert _classify("memberships", columns) == EntityType.MANY_TO_MANY_JUNCTION

    def test_junction_needs_no_primary_key(self):
        """Should not classify a table with its own key as junction."""
        columns = [_col("id", primary_key=True), _col("userId", "users"), _col("groupId", "groups")]
        assert _classify("memberships", columns) == EntityType.ASSOCIATION

    def test_junction_column_limit(self):
        """Should not classify wide tables as junction."""
        columns = [_col("aId"), _col("bId")] + [_col(f"extra{i}") for i in range(5)]
        assert _classify("links", columns) == EntityType.TRANSACTIONAL

    def test_association(self):
        """Should classify tables referencing two others as association."""
        columns = [
            _col("id", primary_key=True),
            _col("buyerId", "buyers"),
            _col("sellerId", "sellers"),
            _col("amount"),
        ]
        assert _classify("trades", columns) == EntityType.ASSOCIATION

    def test_audit(self):
        """Should classify log and history tables as audit."""
        columns = [_col("id", primary_key=True), _col("message"), _col("level")]
        assert _classify("eventLog", columns) == EntityType.AUDIT
        assert _classify("auditEntries", columns) == EntityType.AUDIT

    def test_reference_by_columns(self):
        """Should classify small tables with a name column as reference."""
        columns = [_col("id", primary_key=True), _col("name")]
        assert _classify("colors", columns) == EntityType.REFERENCE

    def test_reference_column_marker_case_sensitive(self):
        """Should match reference column markers case-sensitively."""
        columns = [_col("id", primary_key=True), _col("displayName")]
        assert _classify("colors", columns) == EntityType.TRANSACTIONAL

    def test_reference_by_name(self):
        """Should classify type, status and category tables as reference."""
        columns = [_col(c) for c in ("id", "code", "label", "rank", "active", "sort")]
        assert _classify("orderStatus", columns) == EntityType.REFERENCE
        assert _classify("paymentTypes", columns) == EntityType.REFERENCE

    def test_transactional(self):
        """Should default to transactional."""
        columns = [_col(c) for c in ("id", "number", "total", "issuedAt", "dueAt")]
        assert _classify("invoices", columns) == EntityType.TRANSACTIONAL

    def test_marker_on_table_name(self):
        """Should also look for junction markers in the table name."""
        columns = [_col("left"), _col("right")]
        assert _classify("links", columns, table_name="left_to_right") == EntityType.MANY_TO_MANY_JUNCTION

    def test_configured_junction_markers(self):
        """Should let the junction markers be narrowed."""
        columns = [_col("url"), _col("caption")]
        assert _classify("photos", columns) == EntityType.MANY_TO_MANY_JUNCTION

        rules = HeuristicRules(junction_markers=["_to_"])
        assert _classify("photos", columns, rules=rules) == EntityType.TRANSACTIONAL
        assert _classify("usersToGroups", columns, table_name="users_to_groups", rules=rules) == (
            EntityType.MANY_TO_MANY_JUNCTION
        )


# =============================================================================
# Purity Tests
# =============================================================================

class TestClassificationPurity:
    """Test that classification depends only on entity shape."""

    @pytest.mark.parametrize("name,columns", [
        ("postsToTags", [_col("postId", "posts"), _col("tagId", "tags")]),
        ("trades", [_col("id", primary_key=True), _col("buyerId", "b"), _col("sellerId", "s"), _col("x")]),
        ("colors", [_col("id", primary_key=True), _col("name"), _col("hex")]),
        ("invoices", [_col("id", primary_key=True), _col("a"), _col("b"), _col("c"), _col("d")]),
    ])
    def test_column_order_independent(self, name, columns):
        """Should classify every column permutation the same way."""
        expected = _classify(name, columns)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(columns)
            rng.shuffle(shuffled)
            assert _classify(name, shuffled) == expected

    def test_repeatable(self):
        """Should give the same result on repeated calls."""
        columns = [_col("id", primary_key=True), _col("name")]
        assert _classify("colors", columns) == _classify("colors", columns)


# =============================================================================
# Audit Column Tests
# =============================================================================

class TestDetectAuditColumns:
    """Test detection of conventional audit columns."""

    def test_roles(self):
        """Should map timestamp and version columns to their roles."""
        columns = [_col(c) for c in ("id", "createdAt", "updated_at", "DeletedAt", "version")]
        audit = detect_audit_columns(columns)

        assert audit.created_at == "createdAt"
        assert audit.updated_at == "updated_at"
        assert audit.deleted_at == "DeletedAt"
        assert audit.version == "version"

    def test_underscore_version(self):
        """Should accept _version as the version column."""
        assert detect_audit_columns([_col("_version")]).version == "_version"

    def test_last_match_wins(self):
        """Should keep the last column matching a role."""
        audit = detect_audit_columns([_col("created_at"), _col("createdAt")])
        assert audit.created_at == "createdAt"

    def test_nothing_detected(self):
        """Should return empty roles for tables without audit columns."""
        audit = detect_audit_columns([_col("id"), _col("versions")])
        assert audit.as_dict() == {}
