"""LastChange bookkeeping consumed by downstream cache invalidation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from gipfelsync.domain.model import LastChange, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.ports import LastChangeRepository

log = logging.getLogger(__name__)


class ChangeTracker:
    """Per-collection ``lastModified`` markers that never move backwards."""

    def __init__(
        self,
        repository: LastChangeRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def advance(self, collection_name: str, now: datetime | None = None) -> LastChange:
        """Set ``last_modified = max(existing, now)`` for ``collection_name``."""

        timestamp = now or self._clock()
        marker = self._repository.get(collection_name)
        if marker is None:
            marker = LastChange(collection_name=collection_name, last_modified=timestamp)
            self._repository.add(marker)
        elif timestamp > marker.last_modified:
            marker.last_modified = timestamp
        else:
            log.debug(
                "LastChange for %s kept at %s (clock reads %s)",
                collection_name,
                marker.last_modified,
                timestamp,
            )
            return marker
        log.info("LastChange for %s advanced to %s", collection_name, marker.last_modified)
        return marker

    def touch(self, collection_names: Iterable[str]) -> list[LastChange]:
        now = self._clock()
        return [self.advance(name, now) for name in collection_names]
