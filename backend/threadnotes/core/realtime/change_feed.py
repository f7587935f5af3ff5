from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A document in ``collection`` was created or updated.

    ``thread_id`` is the thread the document belongs to (the document itself
    for threads), so note listeners can filter without a read.
    """

    collection: str
    document_id: str
    thread_id: str | None = None


class ChangeFeed:
    """In-process publish/subscribe hub fed by repository writes.

    Listeners run synchronously inside ``publish`` and must not block; live
    queries only flip a flag and do their reads on their own task.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[[ChangeEvent], None]]] = defaultdict(list)

    def subscribe(self, collection: str, listener: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register ``listener`` for ``collection`` and return a detach function."""
        self._listeners[collection].append(listener)

        def detach() -> None:
            listeners = self._listeners.get(collection)
            if listeners and listener in listeners:
                listeners.remove(listener)

        return detach

    def publish(self, collection: str, document_id: str, *, thread_id: str | None = None) -> None:
        event = ChangeEvent(collection=collection, document_id=document_id, thread_id=thread_id)
        for listener in list(self._listeners.get(collection, ())):
            try:
                listener(event)
            except Exception as err:  # pragma: no cover - listeners only set flags
                logger.error("Change listener failed for %s/%s: %s", collection, document_id, err)

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(collection, ()))
