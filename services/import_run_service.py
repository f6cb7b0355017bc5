"""
Import run bookkeeping.

Each import run gets a row in import_runs. The executor moves its
checkpoint (last_committed_group) forward after every product group it
applies, so a failed run can be resumed from the next group.
"""

from typing import Optional
import structlog

from supabase import Client

from models.catalog_import import (
    ImportCounters,
    ImportMode,
    ImportRunResponse,
    ImportStatus,
)
from exceptions import DatabaseError, ImportRunNotFoundError

logger = structlog.get_logger(__name__)


class ImportRunService:
    """
    Reads and writes import run records.
    """

    def __init__(self, db: Client):
        self.db = db
        self.table = "import_runs"

    def start(
        self,
        mode: ImportMode,
        row_count: int,
        total_groups: int,
        file_hash: Optional[str] = None,
    ) -> ImportRunResponse:
        """Open a new run in RUNNING state with no committed group."""
        try:
            result = self.db.table(self.table).insert({
                "mode": mode.value,
                "status": ImportStatus.RUNNING.value,
                "file_hash": file_hash,
                "row_count": row_count,
                "total_groups": total_groups,
                "last_committed_group": -1,
            }).execute()
        except Exception as e:
            logger.error("import_run_start_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        run = ImportRunResponse(**result.data[0])
        logger.info(
            "import_run_started",
            run_id=run.id,
            mode=mode.value,
            groups=total_groups
        )
        return run

    def reopen(self, run_id: str) -> ImportRunResponse:
        """Move a failed run back to RUNNING for a resume."""
        return self._update(run_id, {
            "status": ImportStatus.RUNNING.value,
            "error_message": None,
        })

    def checkpoint(
        self,
        run_id: str,
        group_index: int,
        counters: ImportCounters,
    ) -> ImportRunResponse:
        """Record that every group up to group_index is applied."""
        return self._update(run_id, {
            "last_committed_group": group_index,
            **counters.model_dump(),
        })

    def finish(
        self,
        run_id: str,
        status: ImportStatus,
        counters: ImportCounters,
        error_message: Optional[str] = None,
    ) -> ImportRunResponse:
        """Close a run as COMPLETED or FAILED."""
        run = self._update(run_id, {
            "status": status.value,
            "error_message": error_message[:2000] if error_message else None,
            **counters.model_dump(),
        })
        logger.info("import_run_finished", run_id=run_id, status=status.value)
        return run

    def get(self, run_id: str) -> ImportRunResponse:
        """
        Get a run by ID.

        Raises:
            ImportRunNotFoundError: If the run doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", run_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_run_failed", run_id=run_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ImportRunNotFoundError(run_id)

        return ImportRunResponse(**result.data[0])

    def list_recent(self, limit: int = 20) -> list[ImportRunResponse]:
        """Most recent runs first."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("list_import_runs_failed", error=str(e))
            raise DatabaseError("select", str(e))

        return [ImportRunResponse(**row) for row in result.data]

    def _update(self, run_id: str, data: dict) -> ImportRunResponse:
        try:
            result = (
                self.db.table(self.table)
                .update(data)
                .eq("id", run_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_import_run_failed", run_id=run_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise ImportRunNotFoundError(run_id)

        return ImportRunResponse(**result.data[0])
