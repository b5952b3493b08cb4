"""
Processing outcome schemas.

ProcessingOutcome is the audit record of one document's processing attempt.
AssemblyResult is what the mapping engine hands back to produce it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field

from models.base import BaseSchema
from exceptions import InvalidStatusTransitionError


class ProcessingStatus(str, Enum):
    """Processing status values."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


TERMINAL_STATUSES = frozenset({ProcessingStatus.SUCCESS, ProcessingStatus.ERROR})

MAX_FILE_NAME_LENGTH = 255

# Allowed forward moves; terminal states have none
STATUS_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING, ProcessingStatus.ERROR},
    ProcessingStatus.PROCESSING: {ProcessingStatus.SUCCESS, ProcessingStatus.ERROR},
    ProcessingStatus.SUCCESS: set(),
    ProcessingStatus.ERROR: set(),
}


def is_valid_status_transition(current: ProcessingStatus, new: ProcessingStatus) -> bool:
    """
    Check if status transition is valid.

    Rules:
    - PENDING → PROCESSING → SUCCESS | ERROR
    - PENDING → ERROR (rejected before processing started)
    - SUCCESS and ERROR are terminal
    """
    return new in STATUS_TRANSITIONS[current]


@dataclass
class AssemblyResult:
    """Field map and terminal status produced by assembling one document."""
    status: ProcessingStatus
    fields: dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == ProcessingStatus.SUCCESS

    @classmethod
    def succeeded(cls, fields: dict[str, str], warnings: Optional[list[str]] = None) -> "AssemblyResult":
        return cls(status=ProcessingStatus.SUCCESS, fields=fields, warnings=warnings or [])

    @classmethod
    def failed(cls, error_message: str, warnings: Optional[list[str]] = None) -> "AssemblyResult":
        """All-or-nothing: a failed document carries no fields."""
        return cls(
            status=ProcessingStatus.ERROR,
            fields={},
            error_message=error_message,
            warnings=warnings or []
        )

    def as_tuple(self) -> tuple[dict[str, str], ProcessingStatus, Optional[str]]:
        """(field map, terminal status, error message)"""
        return self.fields, self.status, self.error_message


class ProcessingOutcome(BaseSchema):
    """
    Terminal record of one document's processing attempt.

    Created PENDING, moved to PROCESSING when the file enters the pipeline,
    then finalized exactly once as SUCCESS or ERROR.
    """

    # Field values are stored exactly as assembled
    model_config = ConfigDict(str_strip_whitespace=False)

    id: Optional[str] = None
    tenant_id: str = Field(..., min_length=1)
    interface_id: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=MAX_FILE_NAME_LENGTH)
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: Optional[str] = Field(None, max_length=1000)
    fields: dict[str, str] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _move_to(self, new_status: ProcessingStatus) -> None:
        if not is_valid_status_transition(self.status, new_status):
            raise InvalidStatusTransitionError(self.status.value, new_status.value)
        self.status = new_status

    def start(self) -> None:
        """PENDING → PROCESSING."""
        self._move_to(ProcessingStatus.PROCESSING)

    def succeed(self, fields: dict[str, str], warnings: Optional[list[str]] = None) -> None:
        self._move_to(ProcessingStatus.SUCCESS)
        self.fields = dict(fields)
        self.warnings = list(warnings or [])
        self.processed_at = datetime.now(timezone.utc)

    def fail(self, error_message: str, warnings: Optional[list[str]] = None) -> None:
        self._move_to(ProcessingStatus.ERROR)
        self.fields = {}
        self.error_message = error_message[:1000]
        self.warnings = list(warnings or [])
        self.processed_at = datetime.now(timezone.utc)

    def finish(self, result: AssemblyResult) -> None:
        """Apply an assembly result as the terminal state."""
        if result.success:
            self.succeed(result.fields, result.warnings)
        else:
            self.fail(result.error_message or "Processing failed", result.warnings)

    def to_row(self) -> dict:
        """Convert to a processed_files table row."""
        row = {
            "tenant_id": self.tenant_id,
            "interface_id": self.interface_id,
            "file_name": self.file_name,
            "status": self.status.value,
            "error_message": self.error_message,
            "fields": self.fields,
            "warnings": self.warnings,
            "created_at": self.created_at.isoformat(),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
        if self.id:
            row["id"] = self.id
        return row
