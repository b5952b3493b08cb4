"""
Custom exception classes for the mapping engine.

Every error carries a stable code, a human-readable message and a details
dict. Fatal processing errors end up as the error_message of an ERROR
ProcessingOutcome.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "STRATEGY_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None,
        message: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=message or f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# TENANT ERRORS
# ===================

class TenantContextError(ValidationError):
    """A tenant is required but none is active."""

    def __init__(self, message: str = "No tenant is active for this unit of work"):
        super().__init__(
            code="TENANT_CONTEXT_MISSING",
            message=message
        )


# ===================
# STRATEGY ERRORS
# ===================

class StrategyNotFoundError(NotFoundError):
    """No registered strategy can handle the document type."""

    def __init__(self, document_type: str):
        super().__init__(
            resource="Processing strategy",
            identifier=document_type,
            code="STRATEGY_NOT_FOUND",
            message=f"No processing strategy found for document type: {document_type}"
        )


class RegistryFrozenError(ConflictError):
    """Strategy registered after the registry was frozen."""

    def __init__(self, strategy_name: str):
        super().__init__(
            code="STRATEGY_REGISTRY_FROZEN",
            message=f"Cannot register {strategy_name}: registry is frozen",
            details={"strategy": strategy_name}
        )


# ===================
# RULE ERRORS
# ===================

class RuleLookupError(NotFoundError):
    """Interface does not exist for this tenant."""

    def __init__(self, tenant_id: str, interface_id: str):
        super().__init__(
            resource="Interface",
            identifier=interface_id,
            code="RULE_LOOKUP_FAILED",
            message=f"Interface {interface_id} does not belong to tenant {tenant_id}"
        )
        self.details["tenant_id"] = tenant_id


class DuplicateTargetFieldError(DuplicateError):
    """Two active rules of one interface write the same target field."""

    def __init__(self, target_field: str, rule_names: list[str]):
        super().__init__(
            resource="Mapping rule",
            field="target_field",
            value=target_field
        )
        self.code = "DUPLICATE_TARGET_FIELD"
        self.message = (
            f"Target field {target_field} is written by more than one rule: "
            f"{', '.join(rule_names)}"
        )
        self.args = (self.message,)
        self.details["rules"] = rule_names


class PathEvaluationError(ValidationError):
    """Malformed XPath expression."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="PATH_EVALUATION_ERROR",
            message=f"Invalid path expression '{path}': {reason}",
            details={"path": path, "reason": reason}
        )


class MissingRequiredFieldError(ValidationError):
    """Required rule produced no value."""

    def __init__(self, rule_name: str, target_field: str, source_path: str):
        super().__init__(
            code="MISSING_REQUIRED_FIELD",
            message=f"Required mapping rule '{rule_name}' produced no value for {target_field}",
            details={
                "rule": rule_name,
                "target_field": target_field,
                "source_path": source_path
            }
        )


# ===================
# DOCUMENT ERRORS
# ===================

class DocumentParseError(ValidationError):
    """Uploaded content is not well-formed XML."""

    def __init__(self, file_name: str, reason: str):
        super().__init__(
            code="DOCUMENT_PARSE_ERROR",
            message=f"Failed to parse XML file {file_name}: {reason}",
            details={"file_name": file_name, "reason": reason}
        )


class DocumentStructureError(ValidationError):
    """Document root does not match the interface configuration."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            code="DOCUMENT_STRUCTURE_ERROR",
            message=f"Expected root element {expected} but found {actual}",
            details={"expected": expected, "actual": actual}
        )


class InvalidStatusTransitionError(ValidationError):
    """Invalid processing status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": "Status can only move forward, and SUCCESS/ERROR are terminal"
            }
        )


# ===================
# SCHEMA ERRORS
# ===================

class SchemaNotFoundError(NotFoundError):
    """Neither tenant-specific nor default schema file exists."""

    def __init__(self, schema_path: str, tenant_id: Optional[str] = None):
        super().__init__(
            resource="Schema",
            identifier=schema_path,
            code="SCHEMA_NOT_FOUND",
            message=f"Schema file not found: {schema_path}"
        )
        if tenant_id:
            self.details["tenant_id"] = tenant_id


class SchemaParseError(ValidationError):
    """Schema file is malformed."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SCHEMA_PARSE_ERROR",
            message=message,
            details=details
        )
