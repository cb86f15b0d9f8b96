"""Queue worker entry point.

Run with: python -m src.cl_worker.runner

Two loops share one process:
  - card requests: BLPOP CARD_REQUEST_QUEUE_KEY -> create_card; on failure
    the raw message is pushed to CARD_REQUEST_DLQ_KEY
  - dead letters:  BLPOP CARD_REQUEST_DLQ_KEY -> card_errors row; if the
    write fails the message goes back on the DLQ for the next pass

A failing message never ends a loop. Only the stop event does.
"""

import asyncio
import logging
import signal
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import redis.asyncio as aioredis
import uvloop
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cl_card.application.service import CardApplicationService
from src.cl_card.domain.repository import CardRepositoryProtocol
from src.cl_card.infrastructure.persistence import CardRepository
from src.cl_common.database import engine, session_factory
from src.cl_common.logging_config import setup_logging
from src.cl_common.metrics import worker_messages_total
from src.cl_common.redis_client import close_redis, get_redis
from src.cl_worker.handlers import handle_card_request, handle_dead_letter

logger = logging.getLogger(__name__)

_POLL_TIMEOUT_S = 5
_RETRY_BACKOFF_S = 1.0

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def _next_message(redis: aioredis.Redis, key: str) -> str | None:
    try:
        item = await redis.blpop([key], timeout=_POLL_TIMEOUT_S)
    except Exception:
        logger.exception("BLPOP on %s failed, backing off", key)
        await asyncio.sleep(_RETRY_BACKOFF_S)
        return None
    if item is None:
        return None
    _, raw = item
    return raw


async def _push(redis: aioredis.Redis, key: str, raw: str, queue: str, outcome: str) -> None:
    try:
        await redis.rpush(key, raw)
    except Exception:
        worker_messages_total.labels(queue=queue, outcome="dropped").inc()
        logger.exception("Could not push message to %s, dropping: %s", key, raw)
        return
    worker_messages_total.labels(queue=queue, outcome=outcome).inc()


async def process_card_requests(
    stop: asyncio.Event,
    service: CardApplicationService,
    redis: aioredis.Redis | None = None,
    sessions: SessionFactory = session_factory,
) -> None:
    redis = redis or await get_redis()
    while not stop.is_set():
        raw = await _next_message(redis, settings.CARD_REQUEST_QUEUE_KEY)
        if raw is None:
            continue
        try:
            async with sessions() as db:
                await handle_card_request(raw, service, db)
        except Exception:
            logger.exception("Error processing message, moving to dead-letter list")
            await _push(redis, settings.CARD_REQUEST_DLQ_KEY, raw, "card_requests", "dead_lettered")
            continue
        worker_messages_total.labels(queue="card_requests", outcome="ok").inc()


async def process_dead_letters(
    stop: asyncio.Event,
    repo: CardRepositoryProtocol,
    redis: aioredis.Redis | None = None,
    sessions: SessionFactory = session_factory,
) -> None:
    redis = redis or await get_redis()
    while not stop.is_set():
        raw = await _next_message(redis, settings.CARD_REQUEST_DLQ_KEY)
        if raw is None:
            continue
        try:
            async with sessions() as db:
                await handle_dead_letter(raw, repo, db)
        except Exception:
            # handle_dead_letter already logged the cause
            await _push(redis, settings.CARD_REQUEST_DLQ_KEY, raw, "dead_letters", "requeued")
            await asyncio.sleep(_RETRY_BACKOFF_S)
            continue
        worker_messages_total.labels(queue="dead_letters", outcome="ok").inc()


async def run_worker() -> None:
    setup_logging(settings.LOG_LEVEL)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    repo = CardRepository()
    service = CardApplicationService(repo=repo)
    logger.info(
        "Worker started: queue=%s dlq=%s",
        settings.CARD_REQUEST_QUEUE_KEY,
        settings.CARD_REQUEST_DLQ_KEY,
    )
    try:
        # A crash in one loop cancels the other before shared pools are closed
        async with asyncio.TaskGroup() as tg:
            tg.create_task(process_card_requests(stop, service))
            tg.create_task(process_dead_letters(stop, repo))
    finally:
        await engine.dispose()
        await close_redis()
        logger.info("Worker stopped")


if __name__ == "__main__":
    uvloop.run(run_worker())
