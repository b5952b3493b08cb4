"""
Tenant XML Mapping Engine application wiring.

Builds the processing service from settings:
    settings -> rule store -> assembler -> strategy registry -> processor
"""

import json
import sys
from typing import Optional
import structlog

from config import settings, check_connection, configure_logging
from services.mapping_rule_service import MappingRuleStore, get_rule_store
from services.processed_file_service import ProcessedFileService, get_processed_file_service
from services.processing_service import XmlProcessorService
from services.result_assembler import ResultAssembler
from services.strategy_registry import build_default_registry

logger = structlog.get_logger(__name__)


def build_processor(
    rule_store: Optional[MappingRuleStore] = None,
    sink: Optional[ProcessedFileService] = None,
    persist: bool = True
) -> XmlProcessorService:
    """
    Wire a processor.

    Args:
        rule_store: Rule store to use (configured store when omitted)
        sink: Result sink (Supabase sink when configured, else none)
        persist: Store outcomes through the configured sink

    Returns:
        XmlProcessorService with a frozen default strategy registry
    """
    store = rule_store or get_rule_store()
    if sink is None and persist and settings.supabase_configured:
        sink = get_processed_file_service()

    registry = build_default_registry(ResultAssembler(store))

    logger.info(
        "processor_built",
        rule_store=type(store).__name__,
        sink=type(sink).__name__ if sink else None,
        strategies=[s.name for s in registry.strategies()],
        max_workers=settings.processing_max_workers
    )
    return XmlProcessorService(registry, store, sink=sink)


def check_database() -> dict:
    """Check Supabase when it is configured and log the result."""
    if not settings.supabase_configured:
        logger.info("database_not_configured")
        return {"status": "not_configured"}

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info(
            "database_connected",
            interfaces=db_status["interfaces_count"],
            mapping_rules=db_status["mapping_rules_count"]
        )
    else:
        logger.error("database_connection_failed", error=db_status.get("error"))
    return db_status


def startup() -> XmlProcessorService:
    """Configure logging, check the database and build the processor."""
    configure_logging()
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )
    check_database()
    return build_processor()


def readiness(processor: XmlProcessorService, db_status: dict) -> dict:
    """Summarize a wired processor for an operator."""
    return {
        "environment": settings.environment,
        "database": db_status,
        "rule_store": type(processor.rule_store).__name__,
        "sink": type(processor.sink).__name__ if processor.sink else None,
        "max_workers": processor.max_workers,
        "strategies": [
            {
                "name": strategy.name,
                "document_type": strategy.document_type,
                "priority": strategy.priority,
            }
            for strategy in processor.registry.strategies()
        ],
    }


def main() -> int:
    """
    Readiness check: wire the engine, print what was built.

    Exit code 1 when the configured database is unreachable.
    """
    configure_logging()
    db_status = check_database()

    with build_processor() as processor:
        report = readiness(processor, db_status)

    print(json.dumps(report, indent=2))
    return 1 if db_status["status"] == "unhealthy" else 0


if __name__ == "__main__":
    sys.exit(main())
