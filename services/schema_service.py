"""
Schema introspection for rule authoring.

Flattens an XSD into the element and attribute declarations a mapping rule
can point at. Read-only; not used while processing documents.

Schema lookup:
    1. <schema_dir>/<tenant_subdir>/<tenant_id>/<file name>  (tenant override)
    2. <schema_dir>/<schema_path>                           (default)
"""

from pathlib import Path
from typing import Optional
import structlog
from lxml import etree

from config import settings
from exceptions import SchemaNotFoundError, SchemaParseError, ValidationError
from models.schema import SchemaElement, SchemaSummary

logger = structlog.get_logger(__name__)

XS_NAMESPACE = "http://www.w3.org/2001/XMLSchema"

_CONTENT_GROUPS = {"sequence", "choice", "all"}


def _local(name: Optional[str]) -> Optional[str]:
    """Strip a namespace prefix: xs:string → string."""
    if name is None:
        return None
    return name.rsplit(":", 1)[-1]


def _tag(element) -> str:
    return etree.QName(element).localname


def _xs_children(element):
    """Child elements in the XML Schema namespace (comments skipped)."""
    for child in element.iterchildren(etree.Element):
        if etree.QName(child).namespace == XS_NAMESPACE:
            yield child


class _SchemaWalker:
    """
    Depth-first walk over the global element declarations of one schema.

    Named types, groups and referenced elements are followed once per
    branch; a name already on the current branch ends the descent there.
    """

    def __init__(self, schema_root: etree._Element):
        self.schema_root = schema_root
        self.elements = self._globals("element")
        self.complex_types = self._globals("complexType")
        self.groups = self._globals("group")
        self.attribute_groups = self._globals("attributeGroup")
        self.results: list[SchemaElement] = []

    def _globals(self, kind: str) -> dict[str, etree._Element]:
        return {
            child.get("name"): child
            for child in _xs_children(self.schema_root)
            if _tag(child) == kind and child.get("name")
        }

    def walk(self) -> list[SchemaElement]:
        for child in _xs_children(self.schema_root):
            if _tag(child) == "element":
                self._element(child, "", frozenset())
        return self.results

    def _element(self, declaration, parent: str, seen: frozenset) -> None:
        min_occurs = declaration.get("minOccurs")
        max_occurs = declaration.get("maxOccurs")

        ref = _local(declaration.get("ref"))
        if ref:
            target = self.elements.get(ref)
            if target is None:
                logger.debug("schema_unresolved_ref", ref=ref)
                self._add(ref, declaration.get("ref"), parent, min_occurs, max_occurs)
                return
            if f"element:{ref}" in seen:
                return
            seen = seen | {f"element:{ref}"}
            declaration = target

        name = declaration.get("name")
        if not name:
            return

        type_name = declaration.get("type")
        inline = next(
            (c for c in _xs_children(declaration) if _tag(c) in ("complexType", "simpleType")),
            None
        )
        if type_name:
            type_label = type_name
        elif inline is not None:
            type_label = _tag(inline)
        else:
            type_label = "anyType"

        path = self._add(name, type_label, parent, min_occurs, max_occurs)

        if inline is not None and _tag(inline) == "complexType":
            self._complex_type(inline, path, seen)
        elif type_name:
            self._named_type(_local(type_name), path, seen)

    def _named_type(self, type_name: str, path: str, seen: frozenset) -> None:
        complex_type = self.complex_types.get(type_name)
        key = f"type:{type_name}"
        if complex_type is None or key in seen:
            return
        self._complex_type(complex_type, path, seen | {key})

    def _complex_type(self, complex_type, path: str, seen: frozenset) -> None:
        for child in _xs_children(complex_type):
            tag = _tag(child)
            if tag in _CONTENT_GROUPS or tag == "group":
                self._particle(child, path, seen)
            elif tag in ("attribute", "attributeGroup"):
                self._attribute(child, path, seen)
            elif tag in ("complexContent", "simpleContent"):
                for derivation in _xs_children(child):
                    if _tag(derivation) == "extension" and derivation.get("base"):
                        # Base type content comes before the extension's own
                        self._named_type(_local(derivation.get("base")), path, seen)
                    self._complex_type(derivation, path, seen)

    def _particle(self, particle, path: str, seen: frozenset) -> None:
        tag = _tag(particle)
        if tag == "element":
            self._element(particle, path, seen)
        elif tag == "group":
            ref = _local(particle.get("ref"))
            group = self.groups.get(ref) if ref else particle
            key = f"group:{ref}"
            if group is None or (ref and key in seen):
                return
            for child in _xs_children(group):
                self._particle(child, path, seen | {key} if ref else seen)
        elif tag in _CONTENT_GROUPS:
            for child in _xs_children(particle):
                self._particle(child, path, seen)

    def _attribute(self, declaration, path: str, seen: frozenset) -> None:
        if _tag(declaration) == "attributeGroup":
            ref = _local(declaration.get("ref"))
            group = self.attribute_groups.get(ref) if ref else declaration
            key = f"attributeGroup:{ref}"
            if group is None or (ref and key in seen):
                return
            for child in _xs_children(group):
                if _tag(child) in ("attribute", "attributeGroup"):
                    self._attribute(child, path, seen | {key} if ref else seen)
            return

        name = declaration.get("name") or _local(declaration.get("ref"))
        if not name:
            return
        required = declaration.get("use") == "required"
        self.results.append(SchemaElement(
            name=name,
            type=declaration.get("type") or "anySimpleType",
            path=f"{path}.@{name}",
            min_occurs="1" if required else "0",
            max_occurs="1",
            is_attribute=True
        ))

    def _add(
        self,
        name: str,
        type_label: str,
        parent: str,
        min_occurs: Optional[str],
        max_occurs: Optional[str]
    ) -> str:
        path = f"{parent}.{name}" if parent else name
        self.results.append(SchemaElement(
            name=name,
            type=type_label,
            path=path,
            min_occurs=min_occurs,
            max_occurs=max_occurs
        ))
        return path


class SchemaIntrospector:
    """Read XSD files and list their declarations."""

    def __init__(
        self,
        schema_dir: Optional[Path] = None,
        tenant_subdir: Optional[str] = None
    ):
        self.schema_dir = Path(schema_dir) if schema_dir is not None else settings.schema_dir
        self.tenant_subdir = tenant_subdir or settings.tenant_schema_subdir

    # ===================
    # FILE RESOLUTION
    # ===================

    def resolve_path(self, schema_path: str, tenant_id: Optional[str] = None) -> Path:
        """
        Locate the schema file to read.

        Raises:
            SchemaNotFoundError: If neither tenant nor default file exists
            ValidationError: If tenant_id is not a plain directory name
        """
        default = Path(schema_path)
        if not default.is_absolute():
            default = self.schema_dir / default

        if tenant_id:
            if Path(tenant_id).name != tenant_id or tenant_id in (".", ".."):
                raise ValidationError(
                    code="INVALID_TENANT_ID",
                    message=f"Invalid tenant id for schema lookup: {tenant_id}"
                )
            override = self.schema_dir / self.tenant_subdir / tenant_id / default.name
            if override.is_file():
                logger.debug("tenant_schema_override", tenant_id=tenant_id, path=str(override))
                return override

        if default.is_file():
            return default

        logger.warning("schema_not_found", schema_path=schema_path, tenant_id=tenant_id)
        raise SchemaNotFoundError(schema_path, tenant_id)

    def _load(self, path: Path) -> etree._Element:
        try:
            # Parsers are not thread-safe; build one per load
            parser = etree.XMLParser(
                resolve_entities=False,
                no_network=True,
                remove_comments=True
            )
            root = etree.parse(str(path), parser).getroot()
        except etree.XMLSyntaxError as e:
            logger.error("schema_parse_failed", path=str(path), error=str(e))
            raise SchemaParseError(
                f"Malformed schema {path.name}: {e}",
                details={"path": str(path)}
            ) from e
        except OSError as e:
            raise SchemaParseError(
                f"Could not read schema {path.name}: {e}",
                details={"path": str(path)}
            ) from e

        qname = etree.QName(root)
        if qname.namespace != XS_NAMESPACE or qname.localname != "schema":
            raise SchemaParseError(
                f"Not an XML Schema document: root element is {qname.localname}",
                details={"path": str(path), "root": root.tag}
            )
        return root

    # ===================
    # INTROSPECTION
    # ===================

    def structure(self, schema_path: str, tenant_id: Optional[str] = None) -> list[SchemaElement]:
        """
        Flatten a schema into element and attribute declarations.

        Args:
            schema_path: Schema file, relative to the schema directory
            tenant_id: Use this tenant's override file when present

        Returns:
            Declarations in document order with dotted paths
            (ASN.Header.DocumentNumber, ASN.@version)

        Raises:
            SchemaNotFoundError: If no schema file exists
            SchemaParseError: If the file is not a well-formed XSD
        """
        path = self.resolve_path(schema_path, tenant_id)
        elements = _SchemaWalker(self._load(path)).walk()
        logger.info(
            "schema_structure_read",
            schema=path.name,
            tenant_id=tenant_id,
            element_count=len(elements)
        )
        return elements

    def describe(self, schema_path: str, tenant_id: Optional[str] = None) -> SchemaSummary:
        """Root element (first global element) and target namespace."""
        root = self._load(self.resolve_path(schema_path, tenant_id))
        first = next(
            (c for c in _xs_children(root) if _tag(c) == "element" and c.get("name")),
            None
        )
        return SchemaSummary(
            root_element=first.get("name") if first is not None else None,
            namespace=root.get("targetNamespace")
        )

    def candidate_paths(
        self,
        schema_path: str,
        tenant_id: Optional[str] = None,
        include_attributes: bool = True
    ) -> list[str]:
        """XPath expressions usable as MappingRule.source_path."""
        return [
            element.xpath
            for element in self.structure(schema_path, tenant_id)
            if include_attributes or not element.is_attribute
        ]


_introspector: Optional[SchemaIntrospector] = None


def get_schema_introspector() -> SchemaIntrospector:
    """Get or create SchemaIntrospector instance."""
    global _introspector
    if _introspector is None:
        _introspector = SchemaIntrospector()
    return _introspector
