"""
Tenant context for the current unit of work.

Components take tenant_id as an explicit parameter. This context only
threads the tenant through call sites that cannot be parameterized, and is
always entered with tenant_scope() so it is released on every exit path.

Backed by contextvars: a value set inside a scope never leaks into the next
task a pooled worker thread picks up.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
import structlog

from exceptions import TenantContextError

logger = structlog.get_logger(__name__)

_current_tenant: ContextVar[Optional[str]] = ContextVar("current_tenant", default=None)


def set_tenant(tenant_id: str) -> None:
    """Set the active tenant. Prefer tenant_scope()."""
    if not tenant_id:
        raise TenantContextError("Tenant id must not be empty")
    _current_tenant.set(tenant_id)


def get_tenant() -> Optional[str]:
    """Active tenant id, or None."""
    return _current_tenant.get()


def clear_tenant() -> None:
    _current_tenant.set(None)


def require_tenant() -> str:
    """
    Active tenant id.

    Raises:
        TenantContextError: If no tenant is active
    """
    tenant_id = _current_tenant.get()
    if tenant_id is None:
        raise TenantContextError()
    return tenant_id


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[str]:
    """
    Activate a tenant for the duration of a block.

    Also binds tenant_id into the structlog context so every log event in
    the block carries it. The previous state is restored on exit, whether
    the block returns or raises.

    Usage:
        with tenant_scope("tenant-1"):
            service.process_document(...)
    """
    if not tenant_id:
        raise TenantContextError("Tenant id must not be empty")

    token = _current_tenant.set(tenant_id)
    log_tokens = structlog.contextvars.bind_contextvars(tenant_id=tenant_id)
    logger.debug("tenant_scope_entered")
    try:
        yield tenant_id
    finally:
        logger.debug("tenant_scope_exited")
        structlog.contextvars.reset_contextvars(**log_tokens)
        _current_tenant.reset(token)
