"""Transaction report serialization.

Every field is wrapped in double quotes and nothing else is escaped, so a
merchant name containing a quote or comma produces a malformed row.
"""

from collections.abc import Iterable
from datetime import datetime

from src.cl_card.domain.models import Transaction

REPORT_HEADER = "uuid,cardId,amount,merchant,type,createdAt"
CONTENT_TYPE = "text/csv"


def filter_by_range(
    transactions: Iterable[Transaction], start: datetime, end: datetime
) -> list[Transaction]:
    """Keep start <= created_at <= end, oldest first."""
    in_range = [tx for tx in transactions if start <= tx.created_at <= end]
    return sorted(in_range, key=lambda tx: tx.created_at)


def _row(tx: Transaction) -> str:
    fields = (
        tx.id,
        tx.card_id,
        str(tx.amount),
        tx.merchant,
        tx.tx_type,
        tx.created_at.isoformat(),
    )
    return ",".join(f'"{value}"' for value in fields)


def render_report(transactions: Iterable[Transaction]) -> str:
    lines = [REPORT_HEADER]
    lines.extend(_row(tx) for tx in transactions)
    return "\n".join(lines) + "\n"
