"""
Interface schemas.

An interface is one configured document type a tenant can submit (e.g. ASN),
bound to a schema file, root element and namespace.
"""

from typing import Optional
from pydantic import Field, field_validator

from models.base import BaseSchema, TimestampMixin


class Interface(BaseSchema, TimestampMixin):
    """Interface configuration."""

    id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=3, max_length=50)
    document_type: str = Field(..., min_length=1, max_length=20, description="e.g. ASN, XML")
    schema_path: Optional[str] = Field(None, max_length=255)
    root_element: Optional[str] = Field(None, max_length=100)
    namespace: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    active: bool = True
    priority: int = 0

    @field_validator("document_type")
    @classmethod
    def normalize_document_type(cls, v: str) -> str:
        """Document types are matched case-insensitively; store uppercase."""
        return v.upper()

    @property
    def namespaces(self) -> Optional[dict[str, str]]:
        """XPath prefix map for this interface ("ns" bound to the namespace)."""
        if not self.namespace:
            return None
        return {"ns": self.namespace}
