from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .logging import log_event
from .models_sales import Sale

if TYPE_CHECKING:
    from .finalizer import TransactionFinalizer

logger = logging.getLogger(__name__)


class OfflineSaleQueue:
    """In-memory connectivity signal plus the queue of sales taken offline."""

    def __init__(self, *, is_online: bool = True) -> None:
        self._online = is_online
        self._queue: list[Sale] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        self._online = online
        log_event(logger, "offline", "connectivity", "online" if online else "offline", queued=len(self._queue))

    @property
    def pending(self) -> tuple[Sale, ...]:
        return tuple(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue_sale(self, sale: Sale) -> Sale:
        queued = sale.model_copy(update={"is_queued": True})
        self._queue.append(queued)
        log_event(logger, "offline", "enqueue", "queued", sale_id=queued.id, queued=len(self._queue))
        return queued

    def drain(self, finalizer: TransactionFinalizer) -> list[Sale]:
        """Replay queued sales in order.

        On the first failure the failing sale and everything after it go back
        on the queue and the error propagates.
        """
        if not self._online or not self._queue:
            return []
        pending, self._queue = self._queue, []
        synced: list[Sale] = []
        for index, sale in enumerate(pending):
            try:
                synced.append(finalizer.commit(sale))
            except Exception:
                self._queue = pending[index:] + self._queue
                log_event(
                    logger,
                    "offline",
                    "drain",
                    "failed",
                    level=logging.WARNING,
                    sale_id=sale.id,
                    remaining=len(self._queue),
                )
                raise
        log_event(logger, "offline", "drain", "success", synced=len(synced))
        return synced
