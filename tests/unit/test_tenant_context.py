"""
Unit tests for tenant context.

Run: pytest tests/unit/test_tenant_context.py -v
"""

import pytest
import structlog
from concurrent.futures import ThreadPoolExecutor

from services.tenant_context import (
    clear_tenant,
    get_tenant,
    require_tenant,
    set_tenant,
    tenant_scope,
)
from exceptions import TenantContextError


@pytest.fixture(autouse=True)
def _no_tenant():
    clear_tenant()
    yield
    clear_tenant()


class TestTenantScope:
    """Tests for tenant_scope()"""

    def test_sets_tenant_inside_block(self):
        """Should expose the tenant inside the block."""
        with tenant_scope("tenant-1"):
            assert get_tenant() == "tenant-1"
            assert require_tenant() == "tenant-1"

    def test_restores_previous_state_on_exit(self):
        """Should clear the tenant after the block."""
        with tenant_scope("tenant-1"):
            pass

        assert get_tenant() is None

    def test_restores_previous_state_on_exception(self):
        """Should release the tenant when the block raises."""
        with pytest.raises(RuntimeError):
            with tenant_scope("tenant-1"):
                raise RuntimeError("boom")

        assert get_tenant() is None

    def test_nested_scopes_restore_outer_tenant(self):
        """Should restore the outer tenant after a nested scope."""
        with tenant_scope("outer"):
            with tenant_scope("inner"):
                assert get_tenant() == "inner"
            assert get_tenant() == "outer"

    def test_binds_tenant_into_log_context(self):
        """Should bind tenant_id into structlog context for the block only."""
        with tenant_scope("tenant-1"):
            assert structlog.contextvars.get_contextvars()["tenant_id"] == "tenant-1"

        assert "tenant_id" not in structlog.contextvars.get_contextvars()

    def test_empty_tenant_rejected(self):
        """Should reject an empty tenant id."""
        with pytest.raises(TenantContextError):
            with tenant_scope(""):
                pass

    def test_worker_threads_do_not_inherit_tenant(self):
        """Should not leak a scope into tasks run on a thread pool."""
        with ThreadPoolExecutor(max_workers=1) as pool:
            with tenant_scope("tenant-1"):
                seen_inside = pool.submit(get_tenant).result()
            seen_after = pool.submit(get_tenant).result()

        assert seen_inside is None
        assert seen_after is None


class TestRequireTenant:
    """Tests for require_tenant()"""

    def test_raises_without_tenant(self):
        """Should raise TenantContextError when no tenant is active."""
        with pytest.raises(TenantContextError) as exc_info:
            require_tenant()

        assert exc_info.value.code == "TENANT_CONTEXT_MISSING"

    def test_returns_tenant_set_directly(self):
        """Should return a tenant set with set_tenant()."""
        set_tenant("tenant-2")

        assert require_tenant() == "tenant-2"

    def test_set_tenant_rejects_empty(self):
        """Should reject an empty tenant id."""
        with pytest.raises(TenantContextError):
            set_tenant("")
