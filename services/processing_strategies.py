"""
Document processing strategies.

A strategy handles one document type. It owns the transformation overrides
for that type and may check the document's root element before handing the
document to the result assembler.
"""

from abc import ABC, abstractmethod
from typing import Optional
import structlog
from lxml import etree

from exceptions import DocumentStructureError
from models.interface import Interface
from models.processing import AssemblyResult
from services.result_assembler import ResultAssembler
from services.transformation_service import ASN_TRANSFORMATIONS, Transformation

logger = structlog.get_logger(__name__)


def _root_of(document) -> etree._Element:
    if isinstance(document, etree._ElementTree):
        return document.getroot()
    return document


def _clark(name: str, namespace: Optional[str]) -> str:
    """{namespace}name, or the bare name when there is no namespace."""
    return f"{{{namespace}}}{name}" if namespace else name


class DocumentProcessingStrategy(ABC):
    """
    Base for per-document-type processors.

    Subclasses declare their document type, display name and priority.
    Strategies are stateless; one instance is shared by every worker.
    """

    # Check root element and namespace against the interface first
    verify_root: bool = False

    def __init__(self, assembler: ResultAssembler):
        self.assembler = assembler

    @property
    @abstractmethod
    def document_type(self) -> str:
        """Document type this strategy handles (e.g. ASN)."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def priority(self) -> int:
        """Higher wins when several strategies can handle a type."""
        return 0

    @property
    def transformations(self) -> dict[str, Transformation]:
        """Overrides layered over the generic transformations."""
        return {}

    def can_handle(self, document_type: str) -> bool:
        return bool(document_type) and document_type.strip().upper() == self.document_type.upper()

    def check_structure(self, document, interface: Interface) -> None:
        """
        Verify the document root matches the interface.

        Raises:
            DocumentStructureError: If root element or namespace differ
        """
        if not interface.root_element:
            return

        root = _root_of(document)
        qname = etree.QName(root)
        expected = _clark(interface.root_element, interface.namespace)
        actual = _clark(qname.localname, qname.namespace)
        if expected != actual:
            raise DocumentStructureError(expected, actual)

    def process(self, document, interface: Interface, tenant_id: str) -> AssemblyResult:
        """
        Map a parsed document using the interface's rules.

        Args:
            document: Parsed lxml document or element
            interface: Interface the document was submitted to
            tenant_id: Submitting tenant

        Returns:
            AssemblyResult (ERROR on structure mismatch or rule failure)
        """
        log = logger.bind(strategy=self.name, interface_id=interface.id)

        if self.verify_root:
            try:
                self.check_structure(document, interface)
            except DocumentStructureError as e:
                log.warning("document_structure_mismatch", error=e.message)
                return AssemblyResult.failed(e.message)

        log.debug("strategy_processing")
        return self.assembler.assemble(
            tenant_id,
            interface.id,
            document,
            transformations=self.transformations,
            namespaces=interface.namespaces
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(document_type={self.document_type!r}, priority={self.priority})"


class AsnProcessingStrategy(DocumentProcessingStrategy):
    """Advance Shipping Notice documents."""

    verify_root = True

    @property
    def document_type(self) -> str:
        return "ASN"

    @property
    def name(self) -> str:
        return "ASN Document Processor"

    @property
    def priority(self) -> int:
        return 100

    @property
    def transformations(self) -> dict[str, Transformation]:
        return ASN_TRANSFORMATIONS


class XmlProcessingStrategy(DocumentProcessingStrategy):
    """Generic XML documents; only the generic transformations apply."""

    @property
    def document_type(self) -> str:
        return "XML"

    @property
    def name(self) -> str:
        return "Generic XML Processor"

    @property
    def priority(self) -> int:
        return 50
