"""
Mapping engine services.

Each service handles one stage of turning a tenant document into a field map.
"""

from services.tenant_context import (
    tenant_scope,
    set_tenant,
    get_tenant,
    clear_tenant,
    require_tenant,
)
from services.xpath_extractor import XPathExtractor, get_xpath_extractor
from services.transformation_service import (
    TransformationPipeline,
    get_transformation_pipeline,
    GENERIC_TRANSFORMATIONS,
    ASN_TRANSFORMATIONS,
)
from services.mapping_rule_service import (
    MappingRuleStore,
    InMemoryMappingRuleStore,
    SupabaseMappingRuleStore,
    get_rule_store,
)
from services.result_assembler import ResultAssembler
from services.processing_strategies import (
    DocumentProcessingStrategy,
    AsnProcessingStrategy,
    XmlProcessingStrategy,
)
from services.strategy_registry import StrategyRegistry, build_default_registry
from services.schema_service import SchemaIntrospector, get_schema_introspector
from services.processed_file_service import ProcessedFileService, get_processed_file_service
from services.processing_service import XmlProcessorService, parse_document

__all__ = [
    # Tenant context
    "tenant_scope",
    "set_tenant",
    "get_tenant",
    "clear_tenant",
    "require_tenant",
    # Extraction and transformation
    "XPathExtractor",
    "get_xpath_extractor",
    "TransformationPipeline",
    "get_transformation_pipeline",
    "GENERIC_TRANSFORMATIONS",
    "ASN_TRANSFORMATIONS",
    # Rules
    "MappingRuleStore",
    "InMemoryMappingRuleStore",
    "SupabaseMappingRuleStore",
    "get_rule_store",
    # Assembly and strategies
    "ResultAssembler",
    "DocumentProcessingStrategy",
    "AsnProcessingStrategy",
    "XmlProcessingStrategy",
    "StrategyRegistry",
    "build_default_registry",
    # Schemas
    "SchemaIntrospector",
    "get_schema_introspector",
    # Processing
    "ProcessedFileService",
    "get_processed_file_service",
    "XmlProcessorService",
    "parse_document",
]
