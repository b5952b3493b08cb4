"""
Mapping rule schemas.

A mapping rule maps one source document path to one output field, with an
optional transformation, default and required-ness. Rules are immutable
once loaded; edits go through the administrative write path.
"""

from typing import Optional
from pydantic import ConfigDict, Field, field_validator

from models.base import BaseSchema


class MappingRule(BaseSchema):
    """Mapping rule."""

    # default_value is written to the output exactly as configured
    model_config = ConfigDict(frozen=True, str_strip_whitespace=False)

    id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)
    interface_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    source_path: str = Field(..., min_length=1, description="XPath expression")
    target_field: str = Field(..., min_length=1)
    transformation: Optional[str] = None
    required: bool = False
    default_value: Optional[str] = None
    priority: int = 0
    table_name: Optional[str] = None
    data_type: Optional[str] = None
    is_attribute: bool = False
    is_active: bool = True
    description: Optional[str] = Field(None, max_length=500)

    @field_validator(
        "id", "tenant_id", "interface_id", "name", "source_path", "target_field",
        "transformation", "table_name", "data_type", "description",
        mode="before"
    )
    @classmethod
    def strip_identifiers(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("transformation")
    @classmethod
    def blank_transformation_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat "" as no transformation."""
        return v or None

    @field_validator("priority", mode="before")
    @classmethod
    def missing_priority_is_zero(cls, v):
        return 0 if v is None else v

    @field_validator("required", "is_attribute", mode="before")
    @classmethod
    def missing_flag_is_false(cls, v):
        return False if v is None else v

    @field_validator("is_active", mode="before")
    @classmethod
    def missing_active_is_true(cls, v):
        return True if v is None else v
