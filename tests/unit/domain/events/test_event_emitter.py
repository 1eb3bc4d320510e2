from datetime import datetime, timezone
from unittest.mock import MagicMock

from planwf.domain.events import (
    StderrEventObserver,
    WorkflowEvent,
    WorkflowEventEmitter,
    WorkflowEventType,
    WorkflowObserver,
)
from planwf.domain.steps import StepId, WorkflowPhase


def _make_event(event_type: WorkflowEventType = WorkflowEventType.STEP_ENTERED, **kwargs) -> WorkflowEvent:
    return WorkflowEvent(
        event_type=event_type,
        session_id="s1",
        timestamp=datetime.now(timezone.utc),
        **kwargs,
    )


class TestWorkflowEventEmitter:
    def test_global_observer_receives_everything(self) -> None:
        emitter = WorkflowEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer)

        emitter.emit(_make_event(WorkflowEventType.STEP_ENTERED))
        emitter.emit(_make_event(WorkflowEventType.WORKFLOW_ABORTED))

        assert observer.on_event.call_count == 2

    def test_filtered_observer(self) -> None:
        emitter = WorkflowEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer, [WorkflowEventType.SECTION_CONFIRMED])

        emitter.emit(_make_event(WorkflowEventType.STEP_ENTERED))
        confirmed = _make_event(WorkflowEventType.SECTION_CONFIRMED, module="Testing")
        emitter.emit(confirmed)

        observer.on_event.assert_called_once_with(confirmed)

    def test_subscription_order_preserved(self) -> None:
        emitter = WorkflowEventEmitter()
        calls: list[str] = []
        first, second = MagicMock(), MagicMock()
        first.on_event.side_effect = lambda e: calls.append("first")
        second.on_event.side_effect = lambda e: calls.append("second")
        emitter.subscribe(first)
        emitter.subscribe(second, [WorkflowEventType.STEP_ENTERED])

        emitter.emit(_make_event())
        assert calls == ["first", "second"]

    def test_unsubscribe(self) -> None:
        emitter = WorkflowEventEmitter()
        observer = MagicMock()
        emitter.subscribe(observer)
        emitter.subscribe(observer, [WorkflowEventType.STEP_ENTERED])
        assert emitter.observer_count == 1

        emitter.unsubscribe(observer)
        emitter.emit(_make_event())

        observer.on_event.assert_not_called()
        assert emitter.observer_count == 0

    def test_failing_observer_does_not_stop_others(self, caplog) -> None:
        emitter = WorkflowEventEmitter()
        broken, healthy = MagicMock(), MagicMock()
        broken.on_event.side_effect = RuntimeError("boom")
        emitter.subscribe(broken)
        emitter.subscribe(healthy)

        emitter.emit(_make_event())

        healthy.on_event.assert_called_once()
        assert "boom" in caplog.text


class TestStderrEventObserver:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(StderrEventObserver(), WorkflowObserver)

    def test_formats_event_line(self, capsys) -> None:
        StderrEventObserver().on_event(
            _make_event(
                WorkflowEventType.GATE_BLOCKED,
                phase=WorkflowPhase.CLARIFICATION_PENDING,
                step=StepId.CLARIFICATION,
                metadata={"missing": ["confirmation", "purpose"]},
            )
        )
        err = capsys.readouterr().err
        assert err == (
            "[EVENT] gate_blocked phase=CLARIFICATION_PENDING step=1 "
            "missing=confirmation,purpose\n"
        )

    def test_includes_module_and_path(self, capsys) -> None:
        StderrEventObserver().on_event(
            _make_event(
                WorkflowEventType.ARTIFACT_PERSISTED,
                module="Testing",
                artifact_path="docs/plans/x-design.md",
            )
        )
        err = capsys.readouterr().err
        assert "module='Testing'" in err
        assert "path=docs/plans/x-design.md" in err
