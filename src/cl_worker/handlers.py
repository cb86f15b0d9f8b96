"""Queue message handlers — thin adapters from raw messages to the card service.

A card-request message is the JSON envelope {"userId": "...", "request": "CREDIT"}.
Failures propagate so the runner can move the message to the dead-letter list.
"""

import json
import logging
import uuid

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_card.application.schemas import CreateCardRequest
from src.cl_card.application.service import CardApplicationService
from src.cl_card.domain.models import Card, ErrorRecord
from src.cl_card.domain.repository import CardRepositoryProtocol
from src.cl_common.datetime_utils import utc_now
from src.cl_common.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEAD_LETTER_MESSAGE = "Failed to process message from queue"


def parse_card_request(raw: str) -> CreateCardRequest:
    try:
        return CreateCardRequest.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise InvalidArgumentError(f"malformed card request message: {exc}") from exc


async def handle_card_request(
    raw: str, service: CardApplicationService, db: AsyncSession
) -> Card:
    logger.info("Processing card request %s", raw)
    message = parse_card_request(raw)
    card = await service.create_card(db, message.user_id, message.request)
    logger.info("Created card %s for user %s", card.id, message.user_id)
    return card


async def handle_dead_letter(
    raw: str, repo: CardRepositoryProtocol, db: AsyncSession
) -> ErrorRecord:
    """Persist a dead-lettered message; raises if the write fails."""
    record = ErrorRecord(
        id=str(uuid.uuid4()),
        error_message=DEAD_LETTER_MESSAGE,
        raw_message=raw,
        created_at=utc_now(),
    )
    try:
        await repo.insert_error(db, record)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("[DLQ] Failed to save dead-lettered message")
        raise
    logger.info("[DLQ] Error persisted in card_errors: %s", record.id)
    return record
