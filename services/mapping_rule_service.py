"""
Mapping rule stores.

Supply the ordered, tenant-scoped, active rule set for an interface. Every
lookup is keyed by tenant id: asking for another tenant's interface fails
with RuleLookupError instead of returning its rules.

Two implementations:
    InMemoryMappingRuleStore: immutable snapshots swapped atomically by the
        administrative write path; readers never see a half-replaced list.
    SupabaseMappingRuleStore: reads the interfaces and mapping_rules tables.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Iterable, Optional
import structlog

from config import get_supabase_client, settings
from exceptions import (
    DatabaseError,
    DuplicateTargetFieldError,
    RuleLookupError,
    ValidationError,
)
from models.interface import Interface
from models.mapping_rule import MappingRule

logger = structlog.get_logger(__name__)


def order_rules(rules: Iterable[MappingRule]) -> tuple[MappingRule, ...]:
    """
    Active rules in evaluation order.

    Ascending priority; rules with equal priority keep their input order.
    """
    return tuple(sorted((r for r in rules if r.is_active), key=lambda r: r.priority))


def find_duplicate_targets(rules: Iterable[MappingRule]) -> dict[str, list[str]]:
    """Target fields written by more than one active rule, with the rule names."""
    names_by_target: dict[str, list[str]] = defaultdict(list)
    for rule in rules:
        if rule.is_active:
            names_by_target[rule.target_field].append(rule.name)
    return {target: names for target, names in names_by_target.items() if len(names) > 1}


class MappingRuleStore(ABC):
    """Read contract the mapping engine needs from a rule store."""

    @abstractmethod
    def get_interface(self, tenant_id: str, interface_id: str) -> Interface:
        """
        Get one of the tenant's interfaces.

        Raises:
            RuleLookupError: If the interface does not belong to the tenant
        """

    @abstractmethod
    def active_rules(self, tenant_id: str, interface_id: str) -> tuple[MappingRule, ...]:
        """
        Active rules of an interface in ascending priority order.

        Raises:
            RuleLookupError: If the interface does not belong to the tenant
        """


class InMemoryMappingRuleStore(MappingRuleStore):
    """
    Process-local rule store.

    Rule lists are stored as tuples and replaced whole under a lock, so a
    reader holding a snapshot is unaffected by a concurrent replace_rules().
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._interfaces: dict[tuple[str, str], Interface] = {}
        self._rules: dict[tuple[str, str], tuple[MappingRule, ...]] = {}

    # ===================
    # READ PATH
    # ===================

    def get_interface(self, tenant_id: str, interface_id: str) -> Interface:
        interface = self._interfaces.get((tenant_id, interface_id))
        if interface is None:
            logger.warning(
                "interface_lookup_failed",
                tenant_id=tenant_id,
                interface_id=interface_id
            )
            raise RuleLookupError(tenant_id, interface_id)
        return interface

    def active_rules(self, tenant_id: str, interface_id: str) -> tuple[MappingRule, ...]:
        self.get_interface(tenant_id, interface_id)
        with self._lock:
            snapshot = self._rules.get((tenant_id, interface_id), ())
        logger.debug(
            "active_rules_loaded",
            interface_id=interface_id,
            rule_count=len(snapshot)
        )
        return snapshot

    # ===================
    # ADMINISTRATIVE WRITE PATH
    # ===================

    def save_interface(self, interface: Interface) -> Interface:
        """Create or update an interface."""
        with self._lock:
            self._interfaces[(interface.tenant_id, interface.id)] = interface
        logger.info(
            "interface_saved",
            tenant_id=interface.tenant_id,
            interface_id=interface.id,
            document_type=interface.document_type
        )
        return interface

    def replace_rules(
        self,
        tenant_id: str,
        interface_id: str,
        rules: Iterable[MappingRule]
    ) -> tuple[MappingRule, ...]:
        """
        Replace the full rule set of an interface.

        Args:
            tenant_id: Owning tenant
            interface_id: Interface the rules belong to
            rules: New rule set (inactive rules are dropped)

        Returns:
            The stored snapshot, in evaluation order

        Raises:
            RuleLookupError: If the interface does not belong to the tenant
            ValidationError: If a rule names another tenant or interface
            DuplicateTargetFieldError: If two active rules share a target field
        """
        self.get_interface(tenant_id, interface_id)
        rules = list(rules)

        for rule in rules:
            if rule.tenant_id != tenant_id or rule.interface_id != interface_id:
                raise ValidationError(
                    code="RULE_SCOPE_MISMATCH",
                    message=f"Rule {rule.name} does not belong to interface {interface_id}",
                    details={
                        "rule": rule.name,
                        "tenant_id": rule.tenant_id,
                        "interface_id": rule.interface_id
                    }
                )

        duplicates = find_duplicate_targets(rules)
        if duplicates:
            target, names = next(iter(duplicates.items()))
            logger.warning(
                "duplicate_target_fields_rejected",
                interface_id=interface_id,
                duplicates=duplicates
            )
            raise DuplicateTargetFieldError(target, names)

        snapshot = order_rules(rules)
        with self._lock:
            self._rules[(tenant_id, interface_id)] = snapshot

        logger.info(
            "rules_replaced",
            tenant_id=tenant_id,
            interface_id=interface_id,
            rule_count=len(snapshot)
        )
        return snapshot

    def add_rule(self, rule: MappingRule) -> tuple[MappingRule, ...]:
        """Append one rule to its interface's rule set."""
        with self._lock:
            current = self._rules.get((rule.tenant_id, rule.interface_id), ())
            return self.replace_rules(rule.tenant_id, rule.interface_id, [*current, rule])


class SupabaseMappingRuleStore(MappingRuleStore):
    """
    Rule store backed by the interfaces and mapping_rules tables.

    Queries filter on tenant_id, and returned rows are checked again before
    use, so a row of another tenant can never reach the engine.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.interfaces_table = "interfaces"
        self.rules_table = "mapping_rules"

    def get_interface(self, tenant_id: str, interface_id: str) -> Interface:
        logger.debug("getting_interface", tenant_id=tenant_id, interface_id=interface_id)

        try:
            result = (
                self.db.table(self.interfaces_table)
                .select("*")
                .eq("id", interface_id)
                .eq("tenant_id", tenant_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_interface_failed", interface_id=interface_id, error=str(e))
            raise DatabaseError("select", str(e))

        for row in result.data or []:
            if str(row.get("id")) == interface_id and str(row.get("tenant_id")) == tenant_id:
                return Interface.model_validate(row)

        logger.warning("interface_lookup_failed", tenant_id=tenant_id, interface_id=interface_id)
        raise RuleLookupError(tenant_id, interface_id)

    def active_rules(self, tenant_id: str, interface_id: str) -> tuple[MappingRule, ...]:
        self.get_interface(tenant_id, interface_id)

        try:
            result = (
                self.db.table(self.rules_table)
                .select("*")
                .eq("tenant_id", tenant_id)
                .eq("interface_id", interface_id)
                .eq("is_active", True)
                .order("priority")
                .execute()
            )
        except Exception as e:
            logger.error("get_rules_failed", interface_id=interface_id, error=str(e))
            raise DatabaseError("select", str(e))

        rules = [
            MappingRule.model_validate(row)
            for row in result.data or []
            if str(row.get("tenant_id")) == tenant_id
            and str(row.get("interface_id")) == interface_id
        ]

        duplicates = find_duplicate_targets(rules)
        if duplicates:
            # Stored before save-time validation existed; last rule wins
            logger.warning(
                "duplicate_target_fields",
                interface_id=interface_id,
                duplicates=duplicates
            )

        snapshot = order_rules(rules)
        logger.debug(
            "active_rules_loaded",
            interface_id=interface_id,
            rule_count=len(snapshot)
        )
        return snapshot


_rule_store: Optional[MappingRuleStore] = None


def get_rule_store() -> MappingRuleStore:
    """
    Get or create the configured rule store.

    Supabase when credentials are configured, in-memory otherwise.
    """
    global _rule_store
    if _rule_store is None:
        if settings.supabase_configured:
            _rule_store = SupabaseMappingRuleStore()
        else:
            _rule_store = InMemoryMappingRuleStore()
    return _rule_store
