"""
Unit tests for processing strategies and StrategyRegistry.

Run: pytest tests/unit/test_strategy_registry.py -v
"""

import pytest
from lxml import etree

from services.processing_strategies import (
    AsnProcessingStrategy,
    DocumentProcessingStrategy,
    XmlProcessingStrategy,
)
from services.strategy_registry import StrategyRegistry, build_default_registry
from models.processing import ProcessingStatus
from exceptions import RegistryFrozenError, StrategyNotFoundError
from tests.factories import InterfaceFactory


class CatchAllStrategy(DocumentProcessingStrategy):
    """Accepts every document type."""

    def __init__(self, assembler, name="catch-all", priority=100):
        super().__init__(assembler)
        self._name = name
        self._priority = priority

    @property
    def document_type(self) -> str:
        return "*"

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._priority

    def can_handle(self, document_type: str) -> bool:
        return True


class TestStrategyRegistryResolve:
    """Tests for StrategyRegistry.resolve()"""

    def test_asn_strategy_wins_for_asn(self, assembler):
        """Should pick the ASN strategy (100) for ASN documents."""
        registry = build_default_registry(assembler)

        strategy = registry.resolve("ASN")

        assert isinstance(strategy, AsnProcessingStrategy)

    def test_generic_strategy_for_xml(self, assembler):
        """Should pick the generic strategy for XML documents."""
        registry = build_default_registry(assembler)

        assert isinstance(registry.resolve("XML"), XmlProcessingStrategy)

    def test_document_type_is_case_insensitive(self, assembler):
        """Should match document types regardless of case."""
        registry = build_default_registry(assembler)

        assert isinstance(registry.resolve("asn"), AsnProcessingStrategy)

    def test_unknown_type_raises(self, assembler):
        """Should raise StrategyNotFoundError naming the type."""
        registry = build_default_registry(assembler)

        with pytest.raises(StrategyNotFoundError) as exc_info:
            registry.resolve("INVOICE")

        assert "INVOICE" in exc_info.value.message
        assert exc_info.value.code == "STRATEGY_NOT_FOUND"

    def test_highest_priority_wins(self, assembler):
        """Should prefer the higher priority among capable strategies."""
        registry = StrategyRegistry()
        registry.register(AsnProcessingStrategy(assembler))
        registry.register(CatchAllStrategy(assembler, priority=200))

        assert registry.resolve("ASN").name == "catch-all"

    def test_tie_goes_to_first_registered(self, assembler):
        """Should keep the first registered strategy on equal priority."""
        registry = StrategyRegistry()
        registry.register(CatchAllStrategy(assembler, name="first", priority=100))
        registry.register(AsnProcessingStrategy(assembler))
        registry.register(CatchAllStrategy(assembler, name="third", priority=100))
        registry.freeze()

        assert registry.resolve("ASN").name == "first"
        assert registry.resolve("ANYTHING").name == "first"

    def test_resolution_is_repeatable(self, assembler):
        """Should resolve to the same instance every time."""
        registry = build_default_registry(assembler)

        assert registry.resolve("ASN") is registry.resolve("ASN")


class TestStrategyRegistryRegister:
    """Tests for StrategyRegistry.register() and freeze()"""

    def test_lists_in_registration_order(self, assembler):
        """Should list strategies in registration order."""
        registry = build_default_registry(assembler)

        names = [s.name for s in registry.strategies()]

        assert names == ["ASN Document Processor", "Generic XML Processor"]

    def test_register_after_freeze_raises(self, assembler):
        """Should reject registration once frozen."""
        registry = build_default_registry(assembler)

        with pytest.raises(RegistryFrozenError):
            registry.register(CatchAllStrategy(assembler))

        assert registry.frozen
        assert len(registry.strategies()) == 2

    def test_freeze_is_idempotent(self, assembler):
        """Should allow freeze() more than once."""
        registry = build_default_registry(assembler)

        registry.freeze()

        assert isinstance(registry.resolve("ASN"), AsnProcessingStrategy)

    def test_resolve_works_before_freeze(self, assembler):
        """Should resolve against registered strategies before freezing."""
        registry = StrategyRegistry()
        registry.register(XmlProcessingStrategy(assembler))

        assert registry.resolve("xml").name == "Generic XML Processor"


class TestProcessingStrategies:
    """Tests for strategy behaviour."""

    def test_strategy_metadata(self, assembler):
        """Should expose type, name and priority."""
        asn = AsnProcessingStrategy(assembler)
        xml = XmlProcessingStrategy(assembler)

        assert (asn.document_type, asn.priority) == ("ASN", 100)
        assert (xml.document_type, xml.priority) == ("XML", 50)
        assert "asn_date" in asn.transformations
        assert xml.transformations == {}

    @pytest.mark.parametrize("document_type,expected", [
        ("ASN", True), ("asn", True), (" Asn ", True), ("XML", False), ("", False),
    ])
    def test_can_handle(self, assembler, document_type, expected):
        """Should match its own type case-insensitively."""
        assert AsnProcessingStrategy(assembler).can_handle(document_type) is expected

    def test_asn_strategy_applies_asn_transformations(self, assembler, add_rules,
                                                        asn_interface, asn_document):
        """Should resolve asn_* transformations through its overrides."""
        add_rules(source_path="/ASN/Header/ShipDate", target_field="ship_date",
                  transformation="asn_date")

        result = AsnProcessingStrategy(assembler).process(asn_document, asn_interface, "tenant-1")

        assert result.fields == {"ship_date": "2024-01-15"}

    def test_generic_strategy_does_not_know_asn_names(self, assembler, add_rules,
                                                       asn_interface, asn_document):
        """Should pass asn_* values through unchanged with a warning."""
        add_rules(source_path="/ASN/Header/ShipDate", target_field="ship_date",
                  transformation="asn_date")

        result = XmlProcessingStrategy(assembler).process(asn_document, asn_interface, "tenant-1")

        assert result.fields == {"ship_date": "20240115"}
        assert result.warnings

    def test_asn_strategy_rejects_wrong_root(self, assembler, add_rules, asn_interface):
        """Should return ERROR naming expected and actual root."""
        add_rules(source_path="/Invoice/Id", target_field="id")
        document = etree.fromstring(b"<Invoice><Id>1</Id></Invoice>")

        result = AsnProcessingStrategy(assembler).process(document, asn_interface, "tenant-1")

        assert result.status == ProcessingStatus.ERROR
        assert "ASN" in result.error_message
        assert "Invoice" in result.error_message
        assert result.fields == {}

    def test_asn_strategy_checks_namespace(self, assembler, rule_store):
        """Should reject a document whose root namespace differs."""
        interface = InterfaceFactory.build(id="interface-ns", tenant_id="tenant-1",
                                           root_element="ASN", namespace="urn:asn:v2")
        rule_store.save_interface(interface)
        document = etree.fromstring(b'<ASN xmlns="urn:asn:v1"/>')

        result = AsnProcessingStrategy(assembler).process(document, interface, "tenant-1")

        assert result.status == ProcessingStatus.ERROR
        assert "urn:asn:v2" in result.error_message

    def test_root_check_skipped_without_root_element(self, assembler, rule_store):
        """Should not check the root when the interface names none."""
        interface = InterfaceFactory.build(id="interface-open", tenant_id="tenant-1")
        rule_store.save_interface(interface)
        document = etree.fromstring(b"<Anything/>")

        result = AsnProcessingStrategy(assembler).process(document, interface, "tenant-1")

        assert result.success
