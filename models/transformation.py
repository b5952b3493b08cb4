"""
Transformation result type.

Transformations report what happened through a tagged result instead of
raising, so the assembler decides what a degraded value means.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TransformStatus(str, Enum):
    """Outcome of one transformation."""
    OK = "OK"
    WARNING = "WARNING"  # Raw value passed through unchanged
    FAILED = "FAILED"  # No usable value


@dataclass(frozen=True)
class TransformResult:
    """Value produced by a transformation plus its status."""
    value: Optional[str]
    status: TransformStatus = TransformStatus.OK
    message: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[str]) -> "TransformResult":
        return cls(value=value)

    @classmethod
    def passthrough(cls, value: Optional[str], message: str) -> "TransformResult":
        """Raw value kept because the transformation could not apply."""
        return cls(value=value, status=TransformStatus.WARNING, message=message)

    @classmethod
    def failed(cls, message: str) -> "TransformResult":
        return cls(value=None, status=TransformStatus.FAILED, message=message)

    @property
    def is_ok(self) -> bool:
        return self.status == TransformStatus.OK

    @property
    def is_failure(self) -> bool:
        return self.status == TransformStatus.FAILED
