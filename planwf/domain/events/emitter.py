"""Dispatch of workflow events to subscribed observers."""

import logging
from collections.abc import Iterable

from planwf.domain.events.event import WorkflowEvent
from planwf.domain.events.event_types import WorkflowEventType
from planwf.domain.events.observer import WorkflowObserver

logger = logging.getLogger(__name__)


class WorkflowEventEmitter:
    """Delivers each event to its observers in subscription order.

    Observers run synchronously on the controller's thread. A failing
    observer is logged and skipped; it never affects the workflow.
    """

    def __init__(self) -> None:
        # (observer, event types or None for every event)
        self._subscriptions: list[tuple[WorkflowObserver, frozenset[WorkflowEventType] | None]] = []

    def subscribe(
        self,
        observer: WorkflowObserver,
        event_types: Iterable[WorkflowEventType] | None = None,
    ) -> None:
        """Subscribe observer to event_types, or to every event when None."""
        types = frozenset(event_types) if event_types is not None else None
        self._subscriptions.append((observer, types))

    def unsubscribe(self, observer: WorkflowObserver) -> None:
        self._subscriptions = [
            (subscribed, types)
            for subscribed, types in self._subscriptions
            if subscribed is not observer
        ]

    @property
    def observer_count(self) -> int:
        return len({id(observer) for observer, _ in self._subscriptions})

    def emit(self, event: WorkflowEvent) -> None:
        for observer, types in list(self._subscriptions):
            if types is None or event.event_type in types:
                self._notify(observer, event)

    def _notify(self, observer: WorkflowObserver, event: WorkflowEvent) -> None:
        try:
            observer.on_event(event)
        except Exception as e:
            logger.warning(
                "Observer %r failed on %s: %s", observer, event.event_type.value, e
            )
