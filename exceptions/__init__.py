"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Tenant
    TenantContextError,

    # Strategies
    StrategyNotFoundError,
    RegistryFrozenError,

    # Rules
    RuleLookupError,
    DuplicateTargetFieldError,
    PathEvaluationError,
    MissingRequiredFieldError,

    # Documents
    DocumentParseError,
    DocumentStructureError,
    InvalidStatusTransitionError,

    # Schemas
    SchemaNotFoundError,
    SchemaParseError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Tenant
    "TenantContextError",

    # Strategies
    "StrategyNotFoundError",
    "RegistryFrozenError",

    # Rules
    "RuleLookupError",
    "DuplicateTargetFieldError",
    "PathEvaluationError",
    "MissingRequiredFieldError",

    # Documents
    "DocumentParseError",
    "DocumentStructureError",
    "InvalidStatusTransitionError",

    # Schemas
    "SchemaNotFoundError",
    "SchemaParseError",
]
