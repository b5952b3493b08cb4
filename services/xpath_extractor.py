"""
XPath extraction over parsed XML documents.

Evaluates a mapping rule's source path and returns the text of the first
match. A path that matches nothing is a normal empty result; only a
malformed expression is an error.
"""

import math
import threading
from collections import OrderedDict
from typing import Optional
import structlog
from lxml import etree

from exceptions import PathEvaluationError

logger = structlog.get_logger(__name__)

# Compiled XPath objects must not be shared between threads
_local = threading.local()

# Per-thread cache size; least recently used expressions are evicted
XPATH_CACHE_SIZE = 512


def _compile(path: str, namespaces: Optional[tuple[tuple[str, str], ...]]) -> etree.XPath:
    """Compile and cache an XPath expression (keyed by path and prefix map)."""
    cache = getattr(_local, "expressions", None)
    if cache is None:
        cache = _local.expressions = OrderedDict()

    key = (path, namespaces)
    expression = cache.get(key)
    if expression is not None:
        cache.move_to_end(key)
        return expression

    try:
        expression = etree.XPath(path, namespaces=dict(namespaces) if namespaces else None)
    except etree.XPathError as e:
        raise PathEvaluationError(path, str(e)) from e

    cache[key] = expression
    while len(cache) > XPATH_CACHE_SIZE:
        cache.popitem(last=False)
    return expression


def cached_expression_count() -> int:
    """Number of compiled expressions cached for the calling thread."""
    return len(getattr(_local, "expressions", ()))


def _text_of(item) -> Optional[str]:
    """Text content of one XPath result item."""
    if isinstance(item, etree._Element):
        # Comments and processing instructions are elements in lxml too
        if not isinstance(item.tag, str):
            return item.text
        return "".join(item.itertext())
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, float):
        # XPath numbers are doubles; count(...) should read as "2", not "2.0"
        return str(int(item)) if item.is_integer() else str(item)
    # Attribute values and text() results are "smart strings"
    return str(item)


class XPathExtractor:
    """
    Evaluate path expressions against lxml documents.

    Compiled expressions are cached per thread, so one extractor can be
    shared by every processing thread.
    """

    def extract(
        self,
        path: str,
        document,
        namespaces: Optional[dict[str, str]] = None
    ) -> Optional[str]:
        """
        Extract the text of the first node matching path.

        Args:
            path: XPath expression (e.g. /ASN/Header/DocumentNumber)
            document: Parsed lxml document (_ElementTree) or element
            namespaces: Optional prefix → URI map for the expression

        Returns:
            Text of the first match, or None if nothing matches

        Raises:
            PathEvaluationError: If the expression is malformed
        """
        if not path or not path.strip():
            raise PathEvaluationError(path or "", "empty expression")

        ns_key = tuple(sorted(namespaces.items())) if namespaces else None
        expression = _compile(path.strip(), ns_key)

        try:
            result = expression(document)
        except etree.XPathError as e:
            # Undefined prefixes and unknown functions surface at evaluation
            raise PathEvaluationError(path, str(e)) from e

        if isinstance(result, list):
            if not result:
                logger.debug("xpath_no_match", path=path)
                return None
            return _text_of(result[0])

        if isinstance(result, float) and not math.isfinite(result):
            # NaN from number() over a missing node, infinity from division by zero
            return None

        return _text_of(result)


_extractor: Optional[XPathExtractor] = None


def get_xpath_extractor() -> XPathExtractor:
    """Get or create XPathExtractor instance."""
    global _extractor
    if _extractor is None:
        _extractor = XPathExtractor()
    return _extractor
