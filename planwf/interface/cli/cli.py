import logging
import warnings
from datetime import date
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from pydantic import BaseModel

from planwf.application.config_loader import load_config
from planwf.domain.errors import SectionOverflowWarning
from planwf.interface.cli.output_models import (
    AdvanceOutput,
    BaseOutput,
    ListOutput,
    SectionOutput,
    SessionOutput,
    SessionSummary,
    StatusOutput,
    TextOutput,
)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_GATE_BLOCKED = 2


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields (e.g., SessionOutput.session_id on error).
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _project_root(ctx: click.Context) -> Path:
    obj = ctx.obj or {}
    return Path(obj.get("project_root") or Path.cwd())


def _format_error(e: Exception) -> str:
    """Format exception into user-friendly message."""
    if isinstance(e, FileNotFoundError):
        return str(e) if e.args and len(e.args) == 1 else f"File not found: {e.filename}"
    if isinstance(e, KeyError):
        return str(e.args[0]) if e.args else str(e)
    return str(e)


def _fail(ctx: click.Context, output: BaseOutput, e: Exception) -> NoReturn:
    """Report e as JSON (exit 1) or as a click error."""
    message = _format_error(e)
    logger.debug("Command %s failed", output.command, exc_info=e)
    if _get_json_mode(ctx):
        _json_emit(output.model_copy(update={"exit_code": EXIT_ERROR, "error": message}))
        raise click.exceptions.Exit(EXIT_ERROR)
    raise click.ClickException(message) from e


def _emit_progress(session) -> None:
    """Emit progress messages to stderr."""
    for msg in getattr(session, "messages", []):
        click.echo(msg, err=True)


def _build_controller(ctx: click.Context, *, with_collaborator: bool = False):
    from planwf.application.section_assembler import WordBand
    from planwf.application.workflow_controller import WorkflowController
    from planwf.domain.events.emitter import WorkflowEventEmitter
    from planwf.domain.persistence.session_store import SessionStore

    project_root = _project_root(ctx)
    cfg = load_config(project_root=project_root, user_home=Path.home())

    event_emitter = WorkflowEventEmitter()
    if (ctx.obj or {}).get("events"):
        from planwf.domain.events.stderr_observer import StderrEventObserver
        event_emitter.subscribe(StderrEventObserver())

    collaborator = None
    if with_collaborator:
        from planwf.domain.collaborators import CollaboratorFactory

        collaborator = CollaboratorFactory.create(cfg.collaborator, cfg.collaborator_config)
        collaborator.validate()

    return WorkflowController(
        session_store=SessionStore(sessions_root=cfg.sessions_root),
        project_root=project_root,
        collaborator=collaborator,
        event_emitter=event_emitter,
        word_band=WordBand(cfg.section_min_words, cfg.section_max_words),
    )


def _load_structured_file(path: Path) -> Any:
    """Parse a YAML (or JSON) input file."""
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Malformed input file {path}: {e}") from e


def _session_output(command: str, session) -> SessionOutput:
    return SessionOutput(
        command=command,
        exit_code=EXIT_OK,
        session_id=session.session_id,
        task_id=session.task_id,
        step=int(session.current_step),
        phase=session.phase.name,
        status=session.status.name,
        messages=list(session.messages),
    )


def _report_session(ctx: click.Context, command: str, session) -> None:
    if _get_json_mode(ctx):
        _json_emit(_session_output(command, session))
        return
    _emit_progress(session)
    click.echo(
        f"step={int(session.current_step)} "
        f"phase={session.phase.name} "
        f"status={session.status.name}"
    )


@click.group(help="Gated coding-plan workflow engine.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr.")
@click.option("--events", is_flag=True, help="Emit workflow events to stderr.")
@click.option(
    "--project-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    events: bool,
    project_root: Path | None,
) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["events"] = bool(events)
    ctx.obj["project_root"] = project_root
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


# ============================================================================
# Session lifecycle
# ============================================================================


@cli.command("start")
@click.argument("topic", type=str)
@click.option("--task", type=str, default=None, help="Merge docs/tasks/<task>-task.md as background.")
@click.option(
    "--date",
    "created_on",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Session date (default: today).",
)
@click.pass_context
def start_cmd(ctx: click.Context, topic: str, task: str | None, created_on) -> None:
    try:
        controller = _build_controller(ctx)
        session = controller.start(
            topic,
            task=task,
            created_on=created_on.date() if created_on else None,
        )
        if _get_json_mode(ctx):
            _json_emit(_session_output("start", session))
            return
        _emit_progress(session)
        click.echo(session.session_id)
    except Exception as e:
        _fail(ctx, SessionOutput(command="start", exit_code=EXIT_ERROR), e)


@cli.command("status")
@click.argument("session_id", type=str)
@click.pass_context
def status_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        controller = _build_controller(ctx)
        session = controller.load(session_id)
        missing: list[str] = []
        if not session.is_terminal:
            missing = sorted(controller.evaluate(session_id).missing)

        output = StatusOutput(
            exit_code=EXIT_OK,
            session_id=session_id,
            task_id=session.task_id,
            topic=session.topic,
            step=int(session.current_step),
            phase=session.phase.name,
            status=session.status.name,
            missing=missing,
            pending_module=session.pending_section.module if session.pending_section else None,
            confirmed_modules=session.confirmed_modules,
            artifact_path=session.artifact.path if session.artifact else None,
            last_error=session.last_error,
        )
        if _get_json_mode(ctx):
            _json_emit(output)
            return

        click.echo(f"task_id={output.task_id}")
        click.echo(f"step={output.step}")
        click.echo(f"phase={output.phase}")
        click.echo(f"status={output.status}")
        if missing:
            click.echo(f"missing={','.join(missing)}")
        if output.pending_module:
            click.echo(f"pending_module={output.pending_module}")
        if output.confirmed_modules:
            click.echo(f"confirmed_modules={','.join(output.confirmed_modules)}")
        if output.artifact_path:
            click.echo(f"artifact_path={output.artifact_path}")
        if output.last_error:
            click.echo(f"last_error={output.last_error}")
    except Exception as e:
        _fail(ctx, StatusOutput(exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    try:
        controller = _build_controller(ctx)
        store = controller.session_store
        summaries: list[SessionSummary] = []
        for session_id in store.list_sessions():
            try:
                session = store.load(session_id)
            except ValueError as e:
                logger.warning("Skipping unreadable session %s: %s", session_id, e)
                continue
            summaries.append(
                SessionSummary(
                    session_id=session.session_id,
                    task_id=session.task_id,
                    step=int(session.current_step),
                    phase=session.phase.name,
                    status=session.status.name,
                    created_at=session.created_at.isoformat(),
                    updated_at=session.updated_at.isoformat(),
                )
            )

        if _get_json_mode(ctx):
            _json_emit(ListOutput(exit_code=EXIT_OK, sessions=summaries, total=len(summaries)))
            return
        if not summaries:
            click.echo("No sessions found.")
            return
        for s in summaries:
            click.echo(f"{s.session_id}  {s.task_id}  step={s.step}  {s.phase}  {s.status}")
    except Exception as e:
        _fail(ctx, ListOutput(exit_code=EXIT_ERROR), e)


@cli.command("abort")
@click.argument("session_id", type=str)
@click.pass_context
def abort_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        session = _build_controller(ctx).abort(session_id)
        _report_session(ctx, "abort", session)
    except Exception as e:
        _fail(ctx, SessionOutput(command="abort", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("advance")
@click.argument("session_id", type=str)
@click.option("--strict", is_flag=True, help="Fail instead of reporting unmet requirements.")
@click.pass_context
def advance_cmd(ctx: click.Context, session_id: str, strict: bool) -> None:
    try:
        result = _build_controller(ctx).advance(session_id, strict=strict)
    except Exception as e:
        _fail(ctx, AdvanceOutput(exit_code=EXIT_ERROR, session_id=session_id), e)

    exit_code = EXIT_OK if result.advanced else EXIT_GATE_BLOCKED
    if _get_json_mode(ctx):
        _json_emit(
            AdvanceOutput(
                exit_code=exit_code,
                session_id=session_id,
                advanced=result.advanced,
                step=int(result.step),
                phase=result.phase.name,
                status=result.status.name,
                missing=sorted(result.missing),
                artifact_path=result.artifact_path,
            )
        )
        raise click.exceptions.Exit(exit_code)

    click.echo(
        f"advanced={'true' if result.advanced else 'false'} "
        f"step={int(result.step)} "
        f"phase={result.phase.name} "
        f"status={result.status.name}"
    )
    for requirement in sorted(result.missing):
        click.echo(f"missing: {requirement}")
    if result.artifact_path:
        click.echo(f"artifact_path={result.artifact_path}")
    raise click.exceptions.Exit(exit_code)


# ============================================================================
# Step 1: Clarification
# ============================================================================


@cli.command("clarify")
@click.argument("session_id", type=str)
@click.option("--purpose", type=str, default=None)
@click.option("--constraints", type=str, default=None)
@click.option("--success-criteria", "success_criteria", type=str, default=None)
@click.pass_context
def clarify_cmd(
    ctx: click.Context,
    session_id: str,
    purpose: str | None,
    constraints: str | None,
    success_criteria: str | None,
) -> None:
    try:
        session = _build_controller(ctx).record_clarification(
            session_id,
            purpose=purpose,
            constraints=constraints,
            success_criteria=success_criteria,
        )
        _report_session(ctx, "clarify", session)
    except Exception as e:
        _fail(ctx, SessionOutput(command="clarify", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("confirm-clarification")
@click.argument("session_id", type=str)
@click.pass_context
def confirm_clarification_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        session = _build_controller(ctx).confirm_no_ambiguity(session_id)
        _report_session(ctx, "confirm-clarification", session)
    except Exception as e:
        _fail(
            ctx,
            SessionOutput(command="confirm-clarification", exit_code=EXIT_ERROR, session_id=session_id),
            e,
        )


@cli.command("questions")
@click.argument("session_id", type=str)
@click.pass_context
def questions_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        text = _build_controller(ctx, with_collaborator=True).request_clarifying_questions(session_id)
        if _get_json_mode(ctx):
            _json_emit(TextOutput(command="questions", exit_code=EXIT_OK, session_id=session_id, text=text))
            return
        click.echo(text)
    except Exception as e:
        _fail(ctx, TextOutput(command="questions", exit_code=EXIT_ERROR, session_id=session_id), e)


# ============================================================================
# Step 2: Solution proposal
# ============================================================================


@cli.command("alternatives")
@click.argument("session_id", type=str)
@click.argument("alternatives_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def alternatives_cmd(ctx: click.Context, session_id: str, alternatives_file: Path) -> None:
    """Record alternatives from a YAML/JSON list (or {alternatives: [...]})."""
    try:
        data = _load_structured_file(alternatives_file)
        if isinstance(data, dict):
            data = data.get("alternatives")
        if not isinstance(data, list):
            raise ValueError("Alternatives file must contain a list of alternatives")
        session = _build_controller(ctx).record_alternatives(session_id, data)
        _report_session(ctx, "alternatives", session)
    except Exception as e:
        _fail(ctx, SessionOutput(command="alternatives", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("proposals")
@click.argument("session_id", type=str)
@click.pass_context
def proposals_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        text = _build_controller(ctx, with_collaborator=True).request_proposals(session_id)
        if _get_json_mode(ctx):
            _json_emit(TextOutput(command="proposals", exit_code=EXIT_OK, session_id=session_id, text=text))
            return
        click.echo(text)
    except Exception as e:
        _fail(ctx, TextOutput(command="proposals", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("choose")
@click.argument("session_id", type=str)
@click.argument("name", type=str)
@click.option("--summary", type=str, default=None, help="Revised summary of the chosen solution.")
@click.pass_context
def choose_cmd(ctx: click.Context, session_id: str, name: str, summary: str | None) -> None:
    try:
        session = _build_controller(ctx).confirm_solution(session_id, name, revised_summary=summary)
        _report_session(ctx, "choose", session)
    except Exception as e:
        _fail(ctx, SessionOutput(command="choose", exit_code=EXIT_ERROR, session_id=session_id), e)


# ============================================================================
# Step 3: Plan drafting
# ============================================================================


@cli.command("outline")
@click.argument("session_id", type=str)
@click.argument("outline_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def outline_cmd(ctx: click.Context, session_id: str, outline_file: Path) -> None:
    """Record the outline from a YAML/JSON mapping of module -> notes."""
    try:
        data = _load_structured_file(outline_file)
        if not isinstance(data, dict):
            raise ValueError("Outline file must contain a mapping of module name to notes")
        session = _build_controller(ctx).record_outline(session_id, data)
        _report_session(ctx, "outline", session)
    except Exception as e:
        _fail(ctx, SessionOutput(command="outline", exit_code=EXIT_ERROR, session_id=session_id), e)


# ============================================================================
# Step 4: Document generation
# ============================================================================


def _report_section(ctx: click.Context, command: str, controller, session_id: str, **fields: Any) -> None:
    session = controller.load(session_id)
    pending = session.pending_section
    output = SectionOutput(
        command=command,
        exit_code=EXIT_OK,
        session_id=session_id,
        pending_module=pending.module if pending else None,
        confirmed_modules=session.confirmed_modules,
        **fields,
    )
    if _get_json_mode(ctx):
        _json_emit(output)
        return

    if pending is not None:
        click.echo(f"pending={pending.module} part={pending.part} words={pending.word_count}")
        if pending.overflow:
            click.echo(
                "overflow: text was split; shorten it, or confirm this part to continue",
                err=True,
            )
        click.echo(pending.text)
    click.echo(f"confirmed_modules={','.join(session.confirmed_modules)}")


@cli.command("propose-section")
@click.argument("session_id", type=str)
@click.argument("module", type=str)
@click.argument("text_file", type=click.File("r", encoding="utf-8"), default="-")
@click.pass_context
def propose_section_cmd(ctx: click.Context, session_id: str, module: str, text_file) -> None:
    """Propose MODULE's section from TEXT_FILE (default: stdin)."""
    try:
        controller = _build_controller(ctx)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SectionOverflowWarning)
            pending = controller.propose_section(session_id, module, text_file.read())
        _report_section(
            ctx, "propose-section", controller, session_id,
            module=pending.module, part=pending.part, words=pending.word_count,
            overflow=pending.overflow,
        )
    except Exception as e:
        _fail(ctx, SectionOutput(command="propose-section", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("draft-section")
@click.argument("session_id", type=str)
@click.argument("module", type=str, required=False)
@click.pass_context
def draft_section_cmd(ctx: click.Context, session_id: str, module: str | None) -> None:
    """Have the collaborator draft MODULE (default: the next one due)."""
    try:
        controller = _build_controller(ctx, with_collaborator=True)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SectionOverflowWarning)
            pending = controller.draft_section(session_id, module)
        _report_section(
            ctx, "draft-section", controller, session_id,
            module=pending.module, part=pending.part, words=pending.word_count,
            overflow=pending.overflow,
        )
    except Exception as e:
        _fail(ctx, SectionOutput(command="draft-section", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("confirm-section")
@click.argument("session_id", type=str)
@click.pass_context
def confirm_section_cmd(ctx: click.Context, session_id: str) -> None:
    try:
        controller = _build_controller(ctx)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SectionOverflowWarning)
            section = controller.confirm_section(session_id)
        _report_section(
            ctx, "confirm-section", controller, session_id,
            module=section.module if section else None,
            appended=section is not None,
        )
    except Exception as e:
        _fail(ctx, SectionOutput(command="confirm-section", exit_code=EXIT_ERROR, session_id=session_id), e)


@cli.command("reject-section")
@click.argument("session_id", type=str)
@click.option("--feedback", required=True, type=str, help="Why the section was rejected.")
@click.pass_context
def reject_section_cmd(ctx: click.Context, session_id: str, feedback: str) -> None:
    try:
        controller = _build_controller(ctx)
        request = controller.reject_section(session_id, feedback)
        _report_section(ctx, "reject-section", controller, session_id, module=request.module)
    except Exception as e:
        _fail(ctx, SectionOutput(command="reject-section", exit_code=EXIT_ERROR, session_id=session_id), e)


# ============================================================================
# Host integration
# ============================================================================


@cli.command("session-start")
@click.option(
    "--plugin-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Plugin root holding skills/ (default: $PLANWF_PLUGIN_ROOT or cwd).",
)
def session_start_cmd(plugin_root: Path | None) -> None:
    """Print the SessionStart hook payload."""
    from planwf.hooks.session_start import render_payload

    click.echo(render_payload(plugin_root), nl=False)
