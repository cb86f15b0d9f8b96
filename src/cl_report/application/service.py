"""ReportApplicationService — card activity export.

Reads the card's transactions, keeps those inside [start, end], renders the
quoted CSV body, uploads it through the report sink and notifies the owner
with the public URL. Read, upload and owner lookup are not locked.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cl_card.application.error_recorder import ErrorRecorder
from src.cl_card.domain.repository import CardRepositoryProtocol
from src.cl_card.infrastructure.persistence import CardRepository
from src.cl_common.datetime_utils import parse_iso_utc, utc_now
from src.cl_common.enums import NotificationEvent
from src.cl_common.errors import CardNotFoundError, InvalidArgumentError
from src.cl_notify.domain.notifier import NotifierProtocol
from src.cl_notify.infrastructure.redis_notifier import RedisNotifier
from src.cl_report.domain.csv_format import CONTENT_TYPE, filter_by_range, render_report
from src.cl_report.domain.sink import ReportSinkProtocol
from src.cl_report.infrastructure.file_sink import FileReportSink

logger = logging.getLogger(__name__)


def report_key(card_id: str) -> str:
    return f"reports/{card_id}/{uuid.uuid4()}.csv"


class ReportApplicationService:
    def __init__(
        self,
        repo: CardRepositoryProtocol | None = None,
        sink: ReportSinkProtocol | None = None,
        notifier: NotifierProtocol | None = None,
        error_recorder: ErrorRecorder | None = None,
        bucket: str | None = None,
        public_url_template: str | None = None,
    ) -> None:
        self._repo: CardRepositoryProtocol = repo or CardRepository()
        self._sink: ReportSinkProtocol = sink or FileReportSink()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()
        self._errors = error_recorder or ErrorRecorder(self._repo)
        self._bucket = bucket or settings.REPORTS_BUCKET
        self._url_template = public_url_template or settings.REPORTS_PUBLIC_BASE_URL

    def public_url(self, key: str) -> str:
        return self._url_template.format(bucket=self._bucket, key=key)

    async def generate_report(
        self, db: AsyncSession, card_id: str, start_iso: str, end_iso: str
    ) -> tuple[str, str]:
        """Returns (key, bucket) of the stored report."""
        try:
            start = parse_iso_utc(start_iso, "start")
            end = parse_iso_utc(end_iso, "end")
            if start > end:
                raise InvalidArgumentError(f"start {start_iso} is after end {end_iso}")

            card = await self._repo.get_card(db, card_id)
            if card is None:
                raise CardNotFoundError(card_id)

            transactions = await self._repo.list_transactions(db, card_id)
            rows = filter_by_range(transactions, start, end)
            body = render_report(rows).encode("utf-8")

            key = report_key(card_id)
            await self._sink.upload(self._bucket, key, body, CONTENT_TYPE)
            logger.info(
                "Report generated: card=%s rows=%d key=%s", card_id, len(rows), key
            )

            user = await self._repo.get_user(db, card.user_id)
            await self._notifier.send(
                NotificationEvent.REPORT_ACTIVITY.value,
                {
                    "date": utc_now().isoformat(),
                    "cardId": card_id,
                    "url": self.public_url(key),
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "userId": card.user_id,
                    "userEmail": user.email if user else None,
                },
            )
            return key, self._bucket
        except Exception as exc:
            await self._errors.log_error(
                db, card_id, exc, f"GenerateReportAsync: start={start_iso}, end={end_iso}"
            )
            raise
