"""
Unit tests for processing outcome models.

Run: pytest tests/unit/test_processing_models.py -v
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from models.processing import (
    AssemblyResult,
    ProcessingOutcome,
    ProcessingStatus,
    is_valid_status_transition,
)
from models.interface import Interface
from models.mapping_rule import MappingRule
from models.tenant import Tenant, TenantStatus
from exceptions import InvalidStatusTransitionError
from tests.factories import TenantFactory


@pytest.fixture
def outcome() -> ProcessingOutcome:
    return ProcessingOutcome(tenant_id="tenant-1", interface_id="interface-1", file_name="asn.xml")


class TestStatusTransitions:
    """Tests for is_valid_status_transition()"""

    @pytest.mark.parametrize("current,new", [
        (ProcessingStatus.PENDING, ProcessingStatus.PROCESSING),
        (ProcessingStatus.PENDING, ProcessingStatus.ERROR),
        (ProcessingStatus.PROCESSING, ProcessingStatus.SUCCESS),
        (ProcessingStatus.PROCESSING, ProcessingStatus.ERROR),
    ])
    def test_forward_transitions_allowed(self, current, new):
        """Should allow forward moves."""
        assert is_valid_status_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        (ProcessingStatus.PENDING, ProcessingStatus.SUCCESS),
        (ProcessingStatus.PROCESSING, ProcessingStatus.PENDING),
        (ProcessingStatus.SUCCESS, ProcessingStatus.ERROR),
        (ProcessingStatus.ERROR, ProcessingStatus.SUCCESS),
        (ProcessingStatus.SUCCESS, ProcessingStatus.PROCESSING),
    ])
    def test_other_transitions_rejected(self, current, new):
        """Should reject skipping PROCESSING and leaving terminal states."""
        assert not is_valid_status_transition(current, new)


class TestProcessingOutcome:
    """Tests for ProcessingOutcome state changes."""

    def test_starts_pending(self, outcome):
        """Should be created PENDING and not terminal."""
        assert outcome.status == ProcessingStatus.PENDING
        assert not outcome.is_terminal
        assert outcome.processed_at is None

    def test_succeed_sets_fields_and_timestamp(self, outcome):
        """Should store fields and processed_at on success."""
        outcome.start()
        outcome.succeed({"doc_number": "00123"}, ["note"])

        assert outcome.status == ProcessingStatus.SUCCESS
        assert outcome.fields == {"doc_number": "00123"}
        assert outcome.warnings == ["note"]
        assert outcome.processed_at is not None
        assert outcome.is_terminal

    def test_field_values_keep_whitespace(self, outcome):
        """Should store assembled values exactly."""
        outcome.start()
        outcome.succeed({"supplier": "  Acme  "})

        assert outcome.fields["supplier"] == "  Acme  "

    def test_fail_clears_fields(self, outcome):
        """Should carry no fields on failure."""
        outcome.start()
        outcome.fail("Required mapping rule 'doc' produced no value for doc_number")

        assert outcome.status == ProcessingStatus.ERROR
        assert outcome.fields == {}
        assert "doc" in outcome.error_message

    def test_long_error_message_truncated(self, outcome):
        """Should cap error messages at 1000 characters."""
        outcome.start()
        outcome.fail("x" * 5000)

        assert len(outcome.error_message) == 1000

    def test_terminal_state_is_final(self, outcome):
        """Should reject a second terminal transition."""
        outcome.start()
        outcome.succeed({})

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            outcome.fail("late failure")

        assert exc_info.value.details["current_status"] == "SUCCESS"
        assert outcome.status == ProcessingStatus.SUCCESS

    def test_cannot_succeed_before_processing(self, outcome):
        """Should require PROCESSING before SUCCESS."""
        with pytest.raises(InvalidStatusTransitionError):
            outcome.succeed({})

    def test_finish_applies_assembly_result(self, outcome):
        """Should map an assembly result onto the outcome."""
        outcome.start()
        outcome.finish(AssemblyResult.failed("boom", ["w"]))

        assert outcome.status == ProcessingStatus.ERROR
        assert outcome.error_message == "boom"
        assert outcome.warnings == ["w"]

    def test_to_row(self, outcome):
        """Should build a processed_files row."""
        outcome.start()
        outcome.succeed({"a": "1"})

        row = outcome.to_row()

        assert row["status"] == "SUCCESS"
        assert row["fields"] == {"a": "1"}
        assert "id" not in row
        assert row["processed_at"] is not None


class TestAssemblyResult:
    """Tests for AssemblyResult"""

    def test_failed_has_no_fields(self):
        """Should never carry fields on failure."""
        result = AssemblyResult.failed("boom")

        assert result.as_tuple() == ({}, ProcessingStatus.ERROR, "boom")
        assert not result.success

    def test_succeeded(self):
        """Should carry fields and no message."""
        result = AssemblyResult.succeeded({"a": "1"})

        assert result.as_tuple() == ({"a": "1"}, ProcessingStatus.SUCCESS, None)


class TestModelValidation:
    """Tests for Interface and MappingRule validation."""

    def test_document_type_uppercased(self):
        """Should store document types in uppercase."""
        interface = Interface(id="i-1", tenant_id="t-1", name="Orders", document_type="asn")

        assert interface.document_type == "ASN"
        assert interface.namespaces is None

    def test_namespace_bound_to_ns_prefix(self):
        """Should expose the namespace under the ns prefix."""
        interface = Interface(id="i-1", tenant_id="t-1", name="Orders",
                              document_type="XML", namespace="urn:x")

        assert interface.namespaces == {"ns": "urn:x"}

    def test_rule_defaults_for_missing_values(self):
        """Should default priority to 0 and treat blank transformation as none."""
        rule = MappingRule(
            id="r-1", tenant_id="t-1", interface_id="i-1", name="doc",
            source_path="/ASN/Id", target_field="doc",
            transformation="", priority=None, is_active=None, required=None,
        )

        assert rule.priority == 0
        assert rule.transformation is None
        assert rule.is_active is True
        assert rule.required is False

    def test_rule_strips_identifiers_but_not_default(self):
        """Should trim names and paths while keeping the default exactly."""
        rule = MappingRule(
            id="r-1", tenant_id="t-1", interface_id="i-1", name="  doc  ",
            source_path=" /ASN/Id ", target_field=" doc ", transformation=" trim ",
            default_value="  pad  ",
        )

        assert rule.name == "doc"
        assert rule.source_path == "/ASN/Id"
        assert rule.target_field == "doc"
        assert rule.transformation == "trim"
        assert rule.default_value == "  pad  "

    def test_blank_transformation_after_trim_is_none(self):
        """Should treat a whitespace-only transformation as none."""
        rule = MappingRule(id="r-1", tenant_id="t-1", interface_id="i-1", name="doc",
                           source_path="/ASN/Id", target_field="doc", transformation="   ")

        assert rule.transformation is None

    def test_rule_is_immutable(self):
        """Should reject attribute assignment on loaded rules."""
        rule = MappingRule(id="r-1", tenant_id="t-1", interface_id="i-1", name="doc",
                           source_path="/ASN/Id", target_field="doc")

        with pytest.raises(PydanticValidationError):
            rule.priority = 5


class TestTenant:
    """Tests for Tenant.accepts_writes"""

    def test_active_tenant_accepts_writes(self):
        """Should allow writes for ACTIVE tenants."""
        tenant = Tenant(**TenantFactory.create())

        assert tenant.accepts_writes

    @pytest.mark.parametrize("status", ["INACTIVE", "PENDING", "SUSPENDED"])
    def test_other_statuses_read_only(self, status):
        """Should block writes without hiding the tenant."""
        tenant = Tenant(**TenantFactory.create(status=status))

        assert tenant.status == TenantStatus(status)
        assert not tenant.accepts_writes
