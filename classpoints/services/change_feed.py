from __future__ import annotations

import logging
from typing import Callable, Optional

from blinker import Namespace

log = logging.getLogger(__name__)

BEHAVIOUR = "behaviour"
AWARD = "award"
REDEMPTION = "redemption"


class ChangeFeed:
    """Invalidation signals for derived views.

    A signal says "something changed for class X (and maybe student Y)". It
    never carries the change itself; receivers recompute from the store.
    External sources such as a database trigger listener can publish here too.
    """

    def __init__(self) -> None:
        self._signals = Namespace()
        self.changed = self._signals.signal("behaviour_changed")

    def publish(self, class_id: int, student_id: Optional[int] = None, reason: str = BEHAVIOUR) -> None:
        log.debug("change: class=%s student=%s reason=%s", class_id, student_id, reason)
        self.changed.send(class_id, student_id=student_id, reason=reason)

    def subscribe(self, receiver: Callable[..., None]) -> Callable[..., None]:
        # Strong reference: bound methods of short-lived objects would vanish otherwise.
        self.changed.connect(receiver, weak=False)
        return receiver

    def unsubscribe(self, receiver: Callable[..., None]) -> None:
        self.changed.disconnect(receiver)
