"""ErrorRecorder — persists an ErrorRecord when a card operation fails.

The caller re-raises its original error after log_error() returns, so this
never raises. If the audit write itself fails, the failure is logged with its
traceback and counted on card_error_record_failures_total instead.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_card.domain.models import ErrorRecord
from src.cl_card.domain.repository import CardRepositoryProtocol
from src.cl_common.datetime_utils import utc_now
from src.cl_common.metrics import error_record_failures_total, operation_label

logger = logging.getLogger(__name__)


class ErrorRecorder:
    def __init__(self, repo: CardRepositoryProtocol) -> None:
        self._repo = repo

    async def log_error(
        self,
        db: AsyncSession,
        card_id: str | None,
        error: BaseException | str,
        raw_message: str | None = None,
    ) -> ErrorRecord | None:
        record = ErrorRecord(
            id=str(uuid.uuid4()),
            card_id=card_id,
            error_message=str(error),
            raw_message=raw_message,
            created_at=utc_now(),
        )
        try:
            # Discard whatever the failed unit of work left behind
            await db.rollback()
            await self._repo.insert_error(db, record)
            await db.commit()
        except Exception:
            operation = operation_label(raw_message)
            error_record_failures_total.labels(operation=operation).inc()
            logger.exception(
                "Failed to persist error record (operation=%s, card=%s, error=%s)",
                operation,
                card_id,
                record.error_message,
            )
            try:
                await db.rollback()
            except Exception:
                logger.exception("Rollback after failed error-record write also failed")
            return None
        logger.warning(
            "Recorded error %s for card=%s: %s", record.id, card_id, record.error_message
        )
        return record
