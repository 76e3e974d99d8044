import asyncio
import logging
import os
from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError

from staffloan.database import SessionLocal
from staffloan.services.outbox_processor import (
    process_outbox_batch,
    release_outbox_lock,
    try_acquire_outbox_lock,
)

logger = logging.getLogger(__name__)

_FALSEY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class WorkerSettings:
    enabled: bool = True
    poll_seconds: float = 1.0
    batch_size: int = 50

    @classmethod
    def from_env(cls) -> "WorkerSettings":
        defaults = cls()
        return cls(
            # Tests drive the processor directly.
            enabled=(
                not os.getenv("PYTEST_CURRENT_TEST")
                and os.getenv("OUTBOX_WORKER_ENABLED", "1").strip().lower() not in _FALSEY
            ),
            poll_seconds=_env_number("OUTBOX_POLL_SECONDS", float, defaults.poll_seconds),
            batch_size=_env_number("OUTBOX_BATCH_SIZE", int, defaults.batch_size),
        )


def _env_number(name: str, kind, default):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default


def _tick(batch_size: int) -> None:
    result = process_outbox_batch(batch_size=batch_size)
    if result.processed or result.failed:
        logger.info("Outbox tick", extra={"processed": result.processed, "failed": result.failed})


async def outbox_worker_loop(settings: WorkerSettings) -> None:
    """Deliver queued notifications until cancelled.

    Only the holder of the PostgreSQL advisory lock delivers, so a second
    uvicorn process idles instead of sending duplicates. Database failures are
    logged and retried on the next poll with a fresh connection pool.
    """
    logger.info(
        "Outbox worker started",
        extra={"poll_seconds": settings.poll_seconds, "batch_size": settings.batch_size},
    )

    while True:
        lock_db = SessionLocal()
        have_lock = False
        try:
            have_lock = try_acquire_outbox_lock(lock_db)
            while have_lock:
                await asyncio.to_thread(_tick, settings.batch_size)
                await asyncio.sleep(settings.poll_seconds)
        except asyncio.CancelledError:
            logger.info("Outbox worker cancelled; shutting down")
            raise
        except DBAPIError:
            logger.exception("Outbox worker lost its database connection")
            lock_db.get_bind().dispose()
        except Exception:
            logger.exception("Outbox worker tick failed")
        finally:
            if have_lock:
                try:
                    release_outbox_lock(lock_db)
                except DBAPIError:
                    logger.warning("Outbox lock release failed; connection already gone")
            lock_db.close()

        await asyncio.sleep(settings.poll_seconds)


def start_outbox_worker_task() -> asyncio.Task | None:
    settings = WorkerSettings.from_env()
    if not settings.enabled:
        logger.info("Outbox worker disabled")
        return None
    return asyncio.create_task(outbox_worker_loop(settings))
