"""Magazine seeding — first-run defaults for the dashboard's inventory view."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .domain.magazine import DEFAULT_MAGAZINES
from .primitives.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .domain.magazine import Magazine
    from .ports.repositories import IMagazineRepository

logger = logging.getLogger("medbox.app")


async def seed_magazines(
    repository: IMagazineRepository,
    magazines: Iterable[Magazine] = DEFAULT_MAGAZINES,
) -> bool:
    """Insert *magazines* if the collection is empty.

    Returns True if anything was inserted. Store failures are logged and
    reported as False; seeding never stops the service from starting.
    """
    try:
        if await repository.count() > 0:
            logger.debug("Magazines already present; skipping seed")
            return False
        defaults = list(magazines)
        await repository.add_many(defaults)
    except PersistenceError:
        logger.exception("Could not seed magazines")
        return False
    logger.info("Seeded %d default magazine(s)", len(defaults))
    return True
