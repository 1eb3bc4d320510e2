from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from planwf.domain.events.event import WorkflowEvent


@runtime_checkable
class WorkflowObserver(Protocol):
    """Anything with ``on_event`` can observe a planning session.

    Implementations should return quickly; they run inline with the
    controller command that emitted the event.
    """

    def on_event(self, event: "WorkflowEvent") -> None:
        ...
