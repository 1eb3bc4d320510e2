"""Observer notifications for planning sessions."""

from planwf.domain.events.emitter import WorkflowEventEmitter
from planwf.domain.events.event import WorkflowEvent
from planwf.domain.events.event_types import WorkflowEventType
from planwf.domain.events.observer import WorkflowObserver
from planwf.domain.events.stderr_observer import StderrEventObserver

__all__ = [
    "StderrEventObserver",
    "WorkflowEvent",
    "WorkflowEventEmitter",
    "WorkflowEventType",
    "WorkflowObserver",
]
