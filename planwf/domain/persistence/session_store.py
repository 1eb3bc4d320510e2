"""File-backed session persistence.

Layout: ``<sessions_root>/<session_id>/session.json``. Each session lives in
its own directory, so concurrent sessions never touch the same file.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from planwf.domain.constants import DEFAULT_SESSIONS_ROOT, SESSION_FILENAME, SESSION_TEMP_SUFFIX
from planwf.domain.models.session import WorkflowSession

logger = logging.getLogger(__name__)

_SESSION_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class SessionStore:
    """Saves and loads WorkflowSession snapshots as JSON."""

    def __init__(self, sessions_root: Path | None = None):
        self.sessions_root = sessions_root or DEFAULT_SESSIONS_ROOT
        self.sessions_root.mkdir(parents=True, exist_ok=True)

    def session_file(self, session_id: str) -> Path:
        """Path of the session.json for session_id.

        Raises:
            ValueError: If session_id could escape the sessions root
        """
        if not _SESSION_ID.match(session_id):
            raise ValueError(f"Invalid session id: '{session_id}'")
        return self.sessions_root / session_id / SESSION_FILENAME

    def save(self, session: WorkflowSession) -> Path:
        """Write the session atomically and stamp ``updated_at``.

        The snapshot is written to a temp file next to session.json and
        renamed over it, so readers see either the old or the new state.

        Raises:
            OSError: If the file cannot be written
        """
        path = self.session_file(session.session_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        session.updated_at = datetime.now(timezone.utc)
        temp_path = path.with_suffix(SESSION_TEMP_SUFFIX)
        temp_path.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        temp_path.replace(path)

        logger.debug("Saved session %s at %s", session.session_id, session.phase.value)
        return path

    def load(self, session_id: str) -> WorkflowSession:
        """
        Raises:
            FileNotFoundError: If the session does not exist
            ValueError: If session.json is not a valid session
        """
        path = self.session_file(session_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FileNotFoundError(f"Session '{session_id}' not found at {path}") from None

        try:
            return WorkflowSession.model_validate_json(raw)
        except ValidationError as e:
            raise ValueError(f"Invalid session data in {path}: {e}") from e

    def list_sessions(self) -> list[str]:
        """Sorted ids of every directory holding a session.json."""
        if not self.sessions_root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.sessions_root.iterdir()
            if (entry / SESSION_FILENAME).is_file()
        )
