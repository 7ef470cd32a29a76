# app/common/events.py

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Tuple, Union

log = logging.getLogger(__name__)

FRIENDSHIP_REQUESTED = "friendship.requested"
FRIENDSHIP_ACCEPTED = "friendship.accepted"
FRIENDSHIP_REJECTED = "friendship.rejected"


@dataclass(frozen=True)
class FriendshipEvent:
    """A friendship transition plus the views it makes stale."""

    type: str
    friendship_id: str
    user_ids: Tuple[str, ...]
    paths: Tuple[str, ...] = field(default_factory=tuple)


Handler = Callable[[FriendshipEvent], Union[None, Awaitable[None]]]


class EventBus:
    def __init__(self):
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def publish(self, event: FriendshipEvent) -> None:
        # a failing consumer must not undo a committed transition
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("Event handler failed for %s", event.type)

    async def publish_all(self, events: Iterable[FriendshipEvent]) -> None:
        for event in events:
            await self.publish(event)


event_bus = EventBus()
