"""
Tenant schemas.

A tenant (client) is an isolated customer whose interfaces and mapping rules
are never visible to another tenant.
"""

from enum import Enum
from pydantic import Field

from models.base import BaseSchema, TimestampMixin


class TenantStatus(str, Enum):
    """Tenant lifecycle states."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"


class Tenant(BaseSchema, TimestampMixin):
    """Tenant record."""

    id: str = Field(..., min_length=1, description="Tenant id")
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=50, description="Short tenant code")
    status: TenantStatus = TenantStatus.ACTIVE

    @property
    def accepts_writes(self) -> bool:
        """Suspended, pending and inactive tenants keep their data but cannot write."""
        return self.status == TenantStatus.ACTIVE
