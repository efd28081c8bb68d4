"""Worker process for scheduled balance provisioning.

Runs an asyncio loop that makes sure every active employee has a ledger row
for the current year and every active leave type. Only missing rows are
inserted, so each tick is safe to repeat.

Shared buckets (rows with no leave type) are never created here; they come
only from the admin provisioning endpoint.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from leavecore.config import get_settings
from leavecore.db import get_session_factory

logger = logging.getLogger(__name__)


async def run_provisioning_once(year: int) -> int:
    """Provision every active leave type for ``year``. Returns the number of rows created."""
    from leavecore.services.leave_type import list_active_leave_types
    from leavecore.services.provisioning import provision_for_year

    session_factory = get_session_factory()
    async with session_factory() as session:
        leave_types = await list_active_leave_types(session)

    created = 0
    for leave_type in leave_types.items:
        try:
            async with session_factory() as session:
                result = await provision_for_year(session, year, leave_type.id)
            created += result.created
        except Exception:
            logger.exception("Provisioning failed for leave type %s year %d", leave_type.name, year)
    return created


async def run_provisioning_loop() -> None:
    """Main worker loop that provisions the current year once per interval."""
    interval = get_settings().provisioning_interval_seconds
    logger.info("Provisioning worker started (interval %ds)", interval)

    while True:
        year = date.today().year
        try:
            created = await run_provisioning_once(year)
            logger.info("Provisioning run complete for %d: created=%d", year, created)
        except Exception:
            logger.exception("Provisioning run failed for %d", year)

        await asyncio.sleep(interval)


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    asyncio.run(run_provisioning_loop())


if __name__ == "__main__":
    main()
