"""
Transaction sink: durable storage of reconciled batches.

One bulk insert per save. Persistent ids (transaccion_id) are assigned by
the store.
"""

from dataclasses import dataclass
from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import TransactionSinkError
from parsers.parse_result import Candidate

logger = structlog.get_logger(__name__)

TABLES = {
    "hours": "hour_transactions",
    "sae": "material_transactions",
}


@dataclass
class SinkResult:
    success: bool
    message: str
    created: int = 0


class TransactionService:
    """Writes hour/material transaction batches."""

    def __init__(self):
        self.db = get_supabase_client()

    def submit_batch(self, kind: str, candidates: list[Candidate]) -> SinkResult:
        """
        Insert a batch in one call.

        Args:
            kind: "hours" or "sae"
            candidates: Reconciled transaction candidates

        Returns:
            SinkResult with the number of rows created

        Raises:
            TransactionSinkError: If the store rejects the batch
        """
        table = TABLES.get(kind)
        if table is None:
            raise TransactionSinkError(
                message=f"Unknown transaction kind: {kind}",
                details={"valid": list(TABLES)}
            )

        records = [c.to_record() for c in candidates]
        for record in records:
            record["is_deleted"] = False

        logger.info("submitting_batch", table=table, count=len(records))

        try:
            response = self.db.table(table).insert(records).execute()
        except Exception as e:
            logger.error("batch_submit_failed", table=table, count=len(records), error=str(e))
            raise TransactionSinkError(
                message=f"Failed to save {len(records)} transactions",
                details={"table": table, "original_error": str(e)}
            )

        created = len(response.data) if response.data else 0
        logger.info("batch_submitted", table=table, created=created)

        return SinkResult(
            success=True,
            message=f"{created} transactions saved",
            created=created,
        )


# Singleton instance
_transaction_service: Optional[TransactionService] = None


def get_transaction_service() -> TransactionService:
    """Get or create TransactionService instance."""
    global _transaction_service
    if _transaction_service is None:
        _transaction_service = TransactionService()
    return _transaction_service
