"""Rendering and persistence of the final design document."""

import hashlib
import logging
from pathlib import Path

from planwf.domain.constants import MANDATORY_MODULES, PLAN_FILENAME_TEMPLATE, PLANS_DIR
from planwf.domain.errors import PersistenceFailure
from planwf.domain.models.document import ArtifactRecord
from planwf.domain.models.session import WorkflowSession

logger = logging.getLogger(__name__)


def design_document_relpath(session: WorkflowSession) -> Path:
    """Canonical path relative to the project root.

    ``docs/plans/YYYY-MM-DD-<topic>-design.md``
    """
    filename = PLAN_FILENAME_TEMPLATE.format(
        date=session.created_on.isoformat(),
        topic=session.topic_slug,
    )
    return PLANS_DIR / filename


def render_design_document(session: WorkflowSession) -> str:
    """Render confirmed sections as Markdown, in canonical module order.

    Raises:
        PersistenceFailure: If any mandatory module has no confirmed section
    """
    by_module = {s.module: s for s in session.document_sections}
    absent = [m for m in MANDATORY_MODULES if m not in by_module]
    if absent:
        raise PersistenceFailure(f"Cannot render design document, missing sections: {absent}")

    lines = [f"# {session.topic} Design", ""]
    lines.append(f"Date: {session.created_on.isoformat()}")
    if session.chosen_solution is not None:
        lines.append(f"Chosen solution: {session.chosen_solution.name}")
    lines.append("")

    for module in MANDATORY_MODULES:
        lines.append(f"## {module}")
        lines.append("")
        lines.append(by_module[module].text.strip())
        lines.append("")

    return "\n".join(lines)


def write_design_document(*, project_root: Path, session: WorkflowSession) -> ArtifactRecord:
    """
    Write the design document to its canonical path under project_root.

    Contract:
    - Creates docs/plans/ as needed.
    - Never overwrites: a different file already at the path is a failure,
      so a new planning run can never silently replace an earlier document.
      Identical content counts as already written.
    - Writes via a temp file so a failed write leaves no partial document.

    Raises:
        PersistenceFailure: If rendering or writing fails
    """
    relpath = design_document_relpath(session)
    root = project_root.resolve()
    full_path = (root / relpath).resolve()

    # The slug cannot contain separators, but keep the write inside the project
    if not full_path.is_relative_to(root):
        raise PersistenceFailure(f"Design document path escapes project root: {relpath}")

    content = render_design_document(session)
    record = ArtifactRecord(
        path=relpath.as_posix(),
        sections=list(MANDATORY_MODULES),
        sha256=hashlib.sha256(content.encode("utf-8")).hexdigest(),
    )

    if full_path.exists():
        try:
            existing = full_path.read_bytes() if full_path.is_file() else None
        except OSError as e:
            raise PersistenceFailure(f"Cannot read existing design document {relpath}: {e}") from e
        # A retry after the write succeeded but the session save did not
        if existing == content.encode("utf-8"):
            logger.info("Design document %s already written", relpath)
            return record
        raise PersistenceFailure(
            f"Design document already exists at {relpath}; start a new session "
            "with a different topic instead of overwriting"
        )

    temp_path = full_path.with_name(full_path.name + ".tmp")

    try:
        full_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(full_path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise PersistenceFailure(f"Failed to write design document {relpath}: {e}") from e

    logger.info("Wrote design document %s", relpath)
    return record
