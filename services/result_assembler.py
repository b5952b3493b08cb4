"""
Result assembler.

Runs a document through an interface's mapping rules and builds the output
field map.

For each rule, in ascending priority order:
    1. Extract the raw value from the rule's source path
    2. Empty extraction + default value → use the default
    3. Apply the rule's transformation (strategy overrides first)
    4. Non-empty value → write it to the field map; a later rule with the
       same target field overwrites an earlier one
    5. No value and the rule is required → the whole document fails

A failed document carries no fields: rules applied before the failing one
are discarded.
"""

from typing import Optional
import structlog

from exceptions import (
    MissingRequiredFieldError,
    PathEvaluationError,
    RuleLookupError,
)
from models.mapping_rule import MappingRule
from models.processing import AssemblyResult
from services.mapping_rule_service import MappingRuleStore, order_rules
from services.transformation_service import (
    Transformation,
    TransformationPipeline,
    get_transformation_pipeline,
)
from services.xpath_extractor import XPathExtractor, get_xpath_extractor

logger = structlog.get_logger(__name__)


class ResultAssembler:
    """
    Build field maps from documents using a rule store.

    Holds no per-document state; one instance serves concurrent calls.
    """

    def __init__(
        self,
        rule_store: MappingRuleStore,
        extractor: Optional[XPathExtractor] = None,
        pipeline: Optional[TransformationPipeline] = None
    ):
        self.rule_store = rule_store
        self.extractor = extractor or get_xpath_extractor()
        self.pipeline = pipeline or get_transformation_pipeline()

    def assemble(
        self,
        tenant_id: str,
        interface_id: str,
        document,
        transformations: Optional[dict[str, Transformation]] = None,
        namespaces: Optional[dict[str, str]] = None
    ) -> AssemblyResult:
        """
        Map a parsed document to a field map.

        Args:
            tenant_id: Tenant submitting the document
            interface_id: Interface whose rules apply
            document: Parsed lxml document or element
            transformations: Strategy-specific transformation overrides
            namespaces: Prefix map for rule paths

        Returns:
            AssemblyResult with SUCCESS and the field map, or ERROR and a
            message naming the failing rule
        """
        log = logger.bind(interface_id=interface_id)

        try:
            rules = order_rules(self.rule_store.active_rules(tenant_id, interface_id))
        except RuleLookupError as e:
            log.warning("assembly_rule_lookup_failed", error=e.message)
            return AssemblyResult.failed(e.message)

        fields: dict[str, str] = {}
        written_by: dict[str, str] = {}
        warnings: list[str] = []

        for rule in rules:
            try:
                value = self._evaluate(rule, document, transformations, namespaces, warnings)
            except PathEvaluationError as e:
                message = f"Required mapping rule '{rule.name}' failed: {e.message}"
                log.warning("assembly_failed", rule=rule.name, error=message)
                return AssemblyResult.failed(message, warnings)

            if value is not None:
                if rule.target_field in written_by:
                    warnings.append(
                        f"Rule '{rule.name}' overwrote {rule.target_field} "
                        f"set by rule '{written_by[rule.target_field]}'"
                    )
                fields[rule.target_field] = value
                written_by[rule.target_field] = rule.name
            elif rule.required:
                error = MissingRequiredFieldError(rule.name, rule.target_field, rule.source_path)
                log.warning(
                    "assembly_failed",
                    rule=rule.name,
                    target_field=rule.target_field,
                    error=error.message
                )
                return AssemblyResult.failed(error.message, warnings)

        log.info(
            "assembly_completed",
            rule_count=len(rules),
            field_count=len(fields),
            warning_count=len(warnings)
        )
        return AssemblyResult.succeeded(fields, warnings)

    def _evaluate(
        self,
        rule: MappingRule,
        document,
        transformations: Optional[dict[str, Transformation]],
        namespaces: Optional[dict[str, str]],
        warnings: list[str]
    ) -> Optional[str]:
        """
        Final value of one rule, or None when it produced nothing.

        Raises:
            PathEvaluationError: If the path is malformed and the rule is required
        """
        try:
            value = self.extractor.extract(rule.source_path, document, namespaces)
        except PathEvaluationError as e:
            if rule.required:
                raise
            logger.warning("rule_skipped", rule=rule.name, error=e.message)
            warnings.append(f"Rule '{rule.name}' skipped: {e.message}")
            return None

        if not value and rule.default_value:
            value = rule.default_value

        if value and rule.transformation:
            result = self.pipeline.transform(value, rule.transformation, transformations)
            if not result.is_ok:
                warnings.append(f"Rule '{rule.name}': {result.message}")
            value = result.value

        # Empty strings count as absent
        return value or None
