"""Sync runner entry point.

Processes the pending tracked files of SYNC_USER_ID. With SYNC_INTERVAL_MINUTES
set, repeats the run on that interval; otherwise runs once and exits. The API
server starts the same periodic loop in its lifespan.

Usage:
    python -m services.rag_sync.rag_sync
"""

import asyncio

from services.container.ServiceContainer import ServiceContainer
from services.sync.SyncService import SyncService
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.errors import SyncAlreadyRunningError


async def run_sync_once(sync_service: SyncService, user_id: int, logger) -> None:
    try:
        result = await sync_service.do_sync_pending_files(user_id)
    except SyncAlreadyRunningError as e:
        logger.warning("Skipping scheduled sync: %s", e)
        return
    logger.info(
        "Sync for user %d finished (success=%s): %d processed, %d errors%s",
        user_id,
        result.success,
        result.processed_count,
        result.error_count,
        ", limit reached" if result.limit_reached else "",
    )


async def run_periodic_sync(sync_service: SyncService, user_id: int, interval_minutes: float, logger) -> None:
    """Run a sync every `interval_minutes` until cancelled."""
    logger.info("Periodic sync every %s minutes for user %d", interval_minutes, user_id)
    while True:
        await run_sync_once(sync_service, user_id, logger)
        await asyncio.sleep(interval_minutes * 60)


async def main() -> None:
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    user_id = config.get_int_val("SYNC_USER_ID")
    interval = config.get_number_val("SYNC_INTERVAL_MINUTES", default=0)

    container = ServiceContainer(helper_config=config)
    try:
        try:
            await container.boot()
        except Exception as e:
            logger.error("Error booting clients: %s. Aborting.", e)
            return

        if interval > 0:
            await run_periodic_sync(container.sync_service, user_id, interval, logger)
        else:
            await run_sync_once(container.sync_service, user_id, logger)
    finally:
        await container.close()


if __name__ == "__main__":
    asyncio.run(main())
