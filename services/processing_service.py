"""
XML processing service.

Entry point for one submitted document:

    bytes → secure parse → tenant scope → strategy → assembly → outcome → sink

Every failure inside the pipeline ends as an ERROR outcome with a readable
message. Only the result sink's own DatabaseError propagates to the caller.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from io import BytesIO
from typing import Optional
import structlog
from lxml import etree

from config import settings
from exceptions import (
    AppError,
    DocumentParseError,
    RuleLookupError,
    TenantContextError,
    ValidationError,
)
from models.interface import Interface
from models.processing import MAX_FILE_NAME_LENGTH, ProcessingOutcome
from services.mapping_rule_service import MappingRuleStore
from services.processed_file_service import ProcessedFileService
from services.strategy_registry import StrategyRegistry
from services.tenant_context import tenant_scope

logger = structlog.get_logger(__name__)


def _secure_parser() -> etree.XMLParser:
    # lxml parsers must not be shared between threads
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        huge_tree=False
    )


def parse_document(content: bytes, file_name: str) -> etree._ElementTree:
    """
    Parse uploaded bytes without entity expansion or network access.

    Raises:
        DocumentParseError: If content is empty or not well-formed XML
    """
    if not content or not content.strip():
        raise DocumentParseError(file_name, "empty document")
    try:
        return etree.parse(BytesIO(content), _secure_parser())
    except etree.XMLSyntaxError as e:
        raise DocumentParseError(file_name, str(e)) from e


class XmlProcessorService:
    """
    Process tenant XML documents into field maps.

    Usage:
        service = XmlProcessorService(registry, store, sink)
        outcome = service.process("tenant-1", interface, data, "asn.xml")
        future = service.submit("tenant-1", interface, data, "asn.xml")
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        rule_store: MappingRuleStore,
        sink: Optional[ProcessedFileService] = None,
        max_workers: Optional[int] = None
    ):
        self.registry = registry
        self.rule_store = rule_store
        self.sink = sink
        self.max_workers = max_workers or settings.processing_max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    # ===================
    # SYNCHRONOUS PROCESSING
    # ===================

    def process(
        self,
        tenant_id: str,
        interface: Interface,
        content: bytes,
        file_name: str
    ) -> ProcessingOutcome:
        """
        Parse and process uploaded XML.

        Args:
            tenant_id: Submitting tenant
            interface: Interface the file was uploaded to
            content: Raw XML bytes
            file_name: Original file name (for the outcome record)

        Returns:
            Terminal ProcessingOutcome (stored copy when a sink is configured)

        Raises:
            TenantContextError: If tenant_id is empty
            DatabaseError: If the sink fails to store the outcome
        """
        outcome = self._new_outcome(tenant_id, interface, file_name)

        with tenant_scope(tenant_id):
            outcome.start()
            try:
                document = parse_document(content, file_name)
            except DocumentParseError as e:
                logger.warning("document_parse_failed", file_name=file_name, error=e.message)
                outcome.fail(e.message)
            else:
                self._run(outcome, interface, document)

            return self._persist(outcome)

    def process_document(
        self,
        tenant_id: str,
        interface: Interface,
        document,
        file_name: str
    ) -> ProcessingOutcome:
        """Process an already parsed lxml document. Same contract as process()."""
        outcome = self._new_outcome(tenant_id, interface, file_name)

        with tenant_scope(tenant_id):
            outcome.start()
            self._run(outcome, interface, document)
            return self._persist(outcome)

    # ===================
    # ASYNCHRONOUS PROCESSING
    # ===================

    def submit(
        self,
        tenant_id: str,
        interface: Interface,
        content: bytes,
        file_name: str
    ) -> "Future[ProcessingOutcome]":
        """Run process() on the worker pool."""
        logger.info("document_submitted", tenant_id=tenant_id, file_name=file_name)
        return self._pool().submit(self.process, tenant_id, interface, content, file_name)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool; pending submissions complete first when wait is set."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
            logger.info("processing_pool_shutdown")

    def __enter__(self) -> "XmlProcessorService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _pool(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="xml-processor"
                )
                logger.info("processing_pool_started", max_workers=self.max_workers)
            return self._executor

    # ===================
    # PIPELINE
    # ===================

    def _new_outcome(self, tenant_id: str, interface: Interface, file_name: str) -> ProcessingOutcome:
        if not tenant_id:
            raise TenantContextError("Tenant id must not be empty")

        file_name = file_name or "document.xml"
        if len(file_name) > MAX_FILE_NAME_LENGTH:
            logger.warning("file_name_truncated", file_name=file_name[:50], length=len(file_name))
            file_name = file_name[:MAX_FILE_NAME_LENGTH]

        return ProcessingOutcome(
            tenant_id=tenant_id,
            interface_id=interface.id,
            file_name=file_name
        )

    def _check_interface(self, tenant_id: str, interface: Interface) -> None:
        if interface.tenant_id != tenant_id:
            raise RuleLookupError(tenant_id, interface.id)
        # The store is the authority on which interfaces a tenant owns
        self.rule_store.get_interface(tenant_id, interface.id)
        if not interface.active:
            raise ValidationError(
                code="INTERFACE_INACTIVE",
                message=f"Interface {interface.name} is not active",
                details={"interface_id": interface.id}
            )

    def _run(self, outcome: ProcessingOutcome, interface: Interface, document) -> None:
        """Drive outcome from PROCESSING to SUCCESS or ERROR."""
        log = logger.bind(interface_id=interface.id, file_name=outcome.file_name)

        try:
            self._check_interface(outcome.tenant_id, interface)
            strategy = self.registry.resolve(interface.document_type)
            result = strategy.process(document, interface, outcome.tenant_id)
        except AppError as e:
            log.warning("document_processing_failed", code=e.code, error=e.message)
            outcome.fail(e.message)
            return
        except Exception as e:
            log.exception("document_processing_crashed", error=str(e))
            outcome.fail(f"Unexpected processing error: {e}")
            return

        outcome.finish(result)
        log.info(
            "document_processed",
            strategy=strategy.name,
            status=outcome.status.value,
            field_count=len(outcome.fields),
            warning_count=len(outcome.warnings)
        )

    def _persist(self, outcome: ProcessingOutcome) -> ProcessingOutcome:
        if self.sink is None:
            return outcome
        return self.sink.save(outcome)
