"""Stderr event observer for CLI integration."""

import click

from planwf.domain.events.event import WorkflowEvent


class StderrEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: WorkflowEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}"]
        if event.phase:
            parts.append(f"phase={event.phase.name}")
        if event.step is not None:
            parts.append(f"step={int(event.step)}")
        if event.module:
            parts.append(f"module={event.module!r}")
        if event.artifact_path:
            parts.append(f"path={event.artifact_path}")
        missing = event.metadata.get("missing")
        if missing:
            parts.append(f"missing={','.join(missing)}")
        click.echo(" ".join(parts), err=True)
