"""
Value transformation pipeline.

Named transformations turn one extracted raw string into a normalized
string. A strategy can supply its own table of transformations, which takes
precedence over the generic built-ins.

Parsing failures (dates, numbers) never abort a document here: the raw
value passes through with a WARNING result and the assembler decides what
that means for the rule.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Optional, Union
import structlog

from models.transformation import TransformResult

logger = structlog.get_logger(__name__)

# A transformation returns the new value, or a TransformResult to report
# a warning or failure itself. ValueError means "could not parse".
Transformation = Callable[[str], Union[str, TransformResult]]


# ===================
# PARSING HELPERS
# ===================

DATE_INPUT_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
]

TIME_INPUT_FORMATS = [
    "%H:%M:%S",
    "%H:%M:%S.%f",
    "%H:%M",
    "%H%M%S",
]

DATETIME_INPUT_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
]

ISO_DATE = "%Y-%m-%d"
ISO_TIME = "%H:%M:%S"
ISO_DATETIME = "%Y-%m-%dT%H:%M:%S"

TWO_PLACES = Decimal("0.01")
THREE_PLACES = Decimal("0.001")

_CURRENCY_NOISE = re.compile(r"[^\d.\-+]")
_INTEGER_LIKE = re.compile(r"^[+-]?\d+$")


def _parse_with_formats(value: str, formats: list[str]) -> datetime:
    text = value.strip()
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized format: {value!r}")


def _parse_decimal(value: str) -> Decimal:
    try:
        number = Decimal(value.strip().replace(",", ""))
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return number


def _fixed(number: Decimal, places: Decimal) -> str:
    """Render with exactly the fraction digits of places (half-up)."""
    return f"{number.quantize(places, rounding=ROUND_HALF_UP):f}"


# ===================
# GENERIC TRANSFORMATIONS
# ===================

def to_uppercase(value: str) -> str:
    return value.upper()


def to_lowercase(value: str) -> str:
    return value.lower()


def trim(value: str) -> str:
    return value.strip()


def to_iso_date(value: str) -> str:
    return _parse_with_formats(value, DATE_INPUT_FORMATS).strftime(ISO_DATE)


def to_iso_time(value: str) -> str:
    return _parse_with_formats(value, TIME_INPUT_FORMATS).strftime(ISO_TIME)


def to_iso_datetime(value: str) -> str:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = _parse_with_formats(text, DATETIME_INPUT_FORMATS)
    except ValueError:
        # Offsets such as +02:00
        parsed = datetime.fromisoformat(text)
    return parsed.strftime(ISO_DATETIME)


def to_number(value: str) -> str:
    return _fixed(_parse_decimal(value), TWO_PLACES)


def to_currency(value: str) -> str:
    """Like number, but tolerates currency symbols and spacing ($ 1,234.5)."""
    return _fixed(_parse_decimal(_CURRENCY_NOISE.sub("", value)), TWO_PLACES)


def to_integer(value: str) -> str:
    """Truncate toward zero: 12.9 → 12, -12.9 → -12."""
    number = _parse_decimal(value)
    if number.adjusted() > 38:
        raise ValueError(f"integer out of range: {value!r}")
    return str(int(number))


GENERIC_TRANSFORMATIONS: dict[str, Transformation] = {
    "uppercase": to_uppercase,
    "lowercase": to_lowercase,
    "trim": trim,
    "date": to_iso_date,
    "time": to_iso_time,
    "datetime": to_iso_datetime,
    "number": to_number,
    "currency": to_currency,
    "integer": to_integer,
}


# ===================
# ASN TRANSFORMATIONS
# ===================

ASN_STATUS_CODES = {
    "01": "NEW",
    "02": "PROCESSING",
    "03": "COMPLETED",
    "04": "ERROR",
}


def asn_date(value: str) -> str:
    """YYYYMMDD → YYYY-MM-DD."""
    text = value.strip()
    if not re.fullmatch(r"\d{8}", text):
        raise ValueError(f"expected YYYYMMDD: {value!r}")
    return datetime.strptime(text, "%Y%m%d").strftime(ISO_DATE)


def asn_time(value: str) -> str:
    """HHMMSS → HH:MM:SS."""
    text = value.strip()
    if not re.fullmatch(r"\d{6}", text):
        raise ValueError(f"expected HHMMSS: {value!r}")
    return datetime.strptime(text, "%H%M%S").strftime(ISO_TIME)


def asn_number(value: str) -> str:
    """Strip leading zeros: 00123 → 123."""
    text = value.strip()
    if not _INTEGER_LIKE.match(text):
        raise ValueError(f"not an integer: {value!r}")
    return str(int(text))


def asn_quantity(value: str) -> str:
    return _fixed(_parse_decimal(value), THREE_PLACES)


def asn_status(value: str) -> str:
    """Map status codes; unknown codes pass through unchanged."""
    return ASN_STATUS_CODES.get(value.strip(), value)


ASN_TRANSFORMATIONS: dict[str, Transformation] = {
    "asn_date": asn_date,
    "asn_time": asn_time,
    "asn_number": asn_number,
    "asn_quantity": asn_quantity,
    "asn_status": asn_status,
}


# ===================
# PIPELINE
# ===================

class TransformationPipeline:
    """
    Resolve and apply named transformations.

    Resolution order: strategy overrides, then the generic built-ins, then
    pass-through with a warning. Names are case-insensitive.
    """

    def __init__(self, builtins: Optional[dict[str, Transformation]] = None):
        source = GENERIC_TRANSFORMATIONS if builtins is None else builtins
        self._builtins = {name.lower(): fn for name, fn in source.items()}

    def resolve(
        self,
        name: str,
        overrides: Optional[dict[str, Transformation]] = None
    ) -> Optional[Transformation]:
        """Find the transformation for name, or None."""
        key = name.strip().lower()
        if overrides:
            for override_name, fn in overrides.items():
                if override_name.lower() == key:
                    return fn
        return self._builtins.get(key)

    def available(self, overrides: Optional[dict[str, Transformation]] = None) -> list[str]:
        """Sorted names usable with the given overrides."""
        names = set(self._builtins)
        names.update(name.lower() for name in (overrides or {}))
        return sorted(names)

    def transform(
        self,
        raw_value: Optional[str],
        name: str,
        overrides: Optional[dict[str, Transformation]] = None
    ) -> TransformResult:
        """
        Apply one named transformation.

        Args:
            raw_value: Extracted (or default) value
            name: Transformation name, e.g. "date" or "asn_status"
            overrides: Strategy-specific transformations

        Returns:
            TransformResult; WARNING when the value passed through unchanged
        """
        if raw_value is None or raw_value == "":
            return TransformResult.ok(raw_value)

        fn = self.resolve(name, overrides)
        if fn is None:
            logger.warning("unknown_transformation", transformation=name)
            return TransformResult.passthrough(raw_value, f"Unknown transformation: {name}")

        try:
            result = fn(raw_value)
        except (ValueError, ArithmeticError) as e:
            logger.warning(
                "transformation_failed",
                transformation=name,
                value=raw_value,
                error=str(e)
            )
            return TransformResult.passthrough(
                raw_value,
                f"Transformation {name} could not parse {raw_value!r}: {e}"
            )

        if isinstance(result, TransformResult):
            return result
        return TransformResult.ok(result)

    def apply(
        self,
        raw_value: Optional[str],
        name: str,
        overrides: Optional[dict[str, Transformation]] = None
    ) -> Optional[str]:
        """Apply a transformation and return only the resulting value."""
        return self.transform(raw_value, name, overrides).value


_pipeline: Optional[TransformationPipeline] = None


def get_transformation_pipeline() -> TransformationPipeline:
    """Get or create TransformationPipeline instance."""
    global _pipeline
    if _pipeline is None:
        _pipeline = TransformationPipeline()
    return _pipeline
