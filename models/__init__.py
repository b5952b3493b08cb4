"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.tenant import (
    TenantStatus,
    Tenant,
)
from models.interface import Interface
from models.mapping_rule import MappingRule
from models.processing import (
    ProcessingStatus,
    TERMINAL_STATUSES,
    is_valid_status_transition,
    AssemblyResult,
    ProcessingOutcome,
)
from models.transformation import (
    TransformStatus,
    TransformResult,
)
from models.schema import (
    SchemaElement,
    SchemaSummary,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Tenant
    "TenantStatus",
    "Tenant",

    # Interface
    "Interface",

    # Mapping rule
    "MappingRule",

    # Processing
    "ProcessingStatus",
    "TERMINAL_STATUSES",
    "is_valid_status_transition",
    "AssemblyResult",
    "ProcessingOutcome",

    # Transformation
    "TransformStatus",
    "TransformResult",

    # Schema
    "SchemaElement",
    "SchemaSummary",
]
