"""
Processed file service.

Result sink for processing outcomes (processed_files table). Every query is
filtered by tenant; rows of another tenant are never returned.
"""

from typing import Optional, Union
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from models.processing import ProcessingOutcome, ProcessingStatus

logger = structlog.get_logger(__name__)


class ProcessedFileService:
    """Persist and query ProcessingOutcome records."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "processed_files"

    def save(self, outcome: ProcessingOutcome) -> ProcessingOutcome:
        """
        Store an outcome.

        Args:
            outcome: Outcome to persist (normally terminal)

        Returns:
            Stored outcome with its database id

        Raises:
            DatabaseError: If the insert fails
        """
        logger.info(
            "saving_processed_file",
            interface_id=outcome.interface_id,
            file_name=outcome.file_name,
            status=outcome.status.value
        )

        try:
            result = (
                self.db.table(self.table)
                .insert(outcome.to_row())
                .execute()
            )
        except Exception as e:
            logger.error("save_processed_file_failed", file_name=outcome.file_name, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "No row returned for processed file")

        stored = self._row_to_outcome(result.data[0])
        logger.info("processed_file_saved", processed_file_id=stored.id)
        return stored

    def list_by_status(
        self,
        tenant_id: str,
        status: Union[ProcessingStatus, str],
        limit: int = 100
    ) -> list[ProcessingOutcome]:
        """Tenant's outcomes with the given status, newest first."""
        status = ProcessingStatus(status)
        rows = self._select(
            tenant_id,
            {"status": status.value},
            limit
        )
        return [self._row_to_outcome(row) for row in rows if row.get("status") == status.value]

    def list_for_interface(
        self,
        tenant_id: str,
        interface_id: str,
        limit: int = 100
    ) -> list[ProcessingOutcome]:
        """Tenant's outcomes for one interface, newest first."""
        rows = self._select(
            tenant_id,
            {"interface_id": interface_id},
            limit
        )
        return [
            self._row_to_outcome(row)
            for row in rows
            if str(row.get("interface_id")) == interface_id
        ]

    def _select(self, tenant_id: str, filters: dict, limit: int) -> list[dict]:
        try:
            query = (
                self.db.table(self.table)
                .select("*")
                .eq("tenant_id", tenant_id)
            )
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.order("created_at", desc=True).limit(limit).execute()
        except Exception as e:
            logger.error("list_processed_files_failed", filters=filters, error=str(e))
            raise DatabaseError("select", str(e))

        return [row for row in result.data or [] if str(row.get("tenant_id")) == tenant_id]

    def _row_to_outcome(self, row: dict) -> ProcessingOutcome:
        """Convert database row to ProcessingOutcome."""
        return ProcessingOutcome(
            id=str(row["id"]) if row.get("id") is not None else None,
            tenant_id=str(row["tenant_id"]),
            interface_id=str(row["interface_id"]),
            file_name=row["file_name"],
            status=row["status"],
            error_message=row.get("error_message"),
            fields=row.get("fields") or {},
            warnings=row.get("warnings") or [],
            created_at=row["created_at"],
            processed_at=row.get("processed_at"),
        )


_processed_file_service: Optional[ProcessedFileService] = None


def get_processed_file_service() -> ProcessedFileService:
    """Get or create ProcessedFileService instance."""
    global _processed_file_service
    if _processed_file_service is None:
        _processed_file_service = ProcessedFileService()
    return _processed_file_service
