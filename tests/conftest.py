"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from lxml import etree

from models.interface import Interface
from services.mapping_rule_service import InMemoryMappingRuleStore
from services.result_assembler import ResultAssembler
from services.strategy_registry import build_default_registry
from services.processing_service import XmlProcessorService
from tests.factories import InterfaceFactory, MappingRuleFactory

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None, error: Exception = None):
        self._data = data or []
        self._count = count
        self._error = error
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        for item in data:
            item.setdefault("id", "test-uuid-123")
            item["created_at"] = datetime.utcnow().isoformat() + "Z"
        self._data = data
        return self

    def eq(self, column, value):
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        if self._is_single:
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, error: Exception = None):
        self._data = data or []
        self._count = count
        self._error = error

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count, self._error)

    def insert(self, data):
        query = MockSupabaseQuery(self._data.copy(), self._count, self._error)
        return query.insert(data)


class MockSupabaseClient:
    """Mock Supabase client. Note: eq() does not filter."""

    def __init__(self):
        self._tables = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count, "error": None}

    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise error."""
        self._tables[table_name] = {"data": [], "count": None, "error": error}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None, "error": None})
        return MockSupabaseTable(config["data"], config["count"], config["error"])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("mapping_rules", [
                {"id": "1", "source_path": "/ASN/Header/DocumentNumber", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("interfaces", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.mapping_rule_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.processed_file_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


# ===================
# DOCUMENTS
# ===================

ASN_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<ASN version="1.0">
  <Header>
    <DocumentNumber>00123</DocumentNumber>
    <ShipDate>20240115</ShipDate>
    <ShipTime>143000</ShipTime>
    <Status>02</Status>
    <Supplier>  Acme Supplies  </Supplier>
  </Header>
  <Lines>
    <Line lineNo="1">
      <ItemNumber>000456</ItemNumber>
      <Quantity>12.5</Quantity>
    </Line>
    <Line lineNo="2">
      <ItemNumber>000789</ItemNumber>
      <Quantity>3</Quantity>
    </Line>
  </Lines>
</ASN>
"""


@pytest.fixture
def asn_xml() -> bytes:
    return ASN_XML


@pytest.fixture
def asn_document():
    """Parsed sample ASN document."""
    return etree.fromstring(ASN_XML).getroottree()


# ===================
# ENGINE
# ===================

@pytest.fixture
def asn_interface() -> Interface:
    return InterfaceFactory.build(
        id="interface-1",
        tenant_id="tenant-1",
        name="Tenant One ASN",
        document_type="ASN",
        root_element="ASN"
    )


@pytest.fixture
def rule_store(asn_interface) -> InMemoryMappingRuleStore:
    """In-memory store holding asn_interface (no rules yet)."""
    store = InMemoryMappingRuleStore()
    store.save_interface(asn_interface)
    return store


@pytest.fixture
def assembler(rule_store) -> ResultAssembler:
    return ResultAssembler(rule_store)


@pytest.fixture
def processor(rule_store, assembler) -> Generator:
    service = XmlProcessorService(build_default_registry(assembler), rule_store, max_workers=2)
    yield service
    service.shutdown()


@pytest.fixture
def add_rules(rule_store, asn_interface):
    """
    Store rules for asn_interface.

    Usage:
        def test_something(add_rules):
            add_rules(source_path="/ASN/Header/DocumentNumber", target_field="doc_number")
    """
    def _add(*rule_kwargs: dict, **single):
        batch = list(rule_kwargs) or [single]
        rules = [
            MappingRuleFactory.build(
                tenant_id=asn_interface.tenant_id,
                interface_id=asn_interface.id,
                **kwargs
            )
            for kwargs in batch
        ]
        return rule_store.replace_rules(asn_interface.tenant_id, asn_interface.id, rules)

    return _add
