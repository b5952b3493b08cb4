"""
Schema introspection results.

Used by the rule-authoring UI to list candidate source paths.
"""

from typing import Optional
from pydantic import Field

from models.base import BaseSchema


class SchemaElement(BaseSchema):
    """One element or attribute declaration flattened from an XSD."""

    name: str
    type: str = Field(..., description="Declared type, 'complexType' for inline complex types")
    path: str = Field(..., description="Dotted path, e.g. ASN.Header.DocumentNumber")
    min_occurs: Optional[str] = None
    max_occurs: Optional[str] = None
    is_attribute: bool = False

    @property
    def xpath(self) -> str:
        """Absolute XPath for this declaration (/ASN/Header/@version)."""
        return "/" + self.path.replace(".", "/")


class SchemaSummary(BaseSchema):
    """Root element and target namespace of a schema."""

    root_element: Optional[str] = None
    namespace: Optional[str] = None
