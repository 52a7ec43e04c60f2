import datetime
import json
import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from brainstormer.log_utils import get_logger
from brainstormer.schemas import Session, SessionSummary
from brainstormer.stages import DEFAULT_STAGE

logger = get_logger("session_store")


def create_empty_session(title: Optional[str] = None) -> Session:
    """Return a new session at the first stage with no messages or artifacts."""
    return Session(title=title or "Untitled")


def _write_text(path: Path, text: str) -> None:
    """Writes text atomically through a sibling temp file."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
    os.replace(tmp, path)


def _local_time(ts: str) -> str:
    try:
        dt = datetime.datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return str(ts)
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


class SessionStore:
    """Sessions as <id>.json plus a rendered <id>.md under <root>/sessions."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)
        self.sessions_dir = self.root_dir / "sessions"

    def _ensure_dir(self) -> None:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str, suffix: str) -> Path:
        sid = (session_id or "").strip()
        if not sid or "/" in sid or "\\" in sid or sid in {".", ".."}:
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.sessions_dir / f"{sid}{suffix}"

    def save(self, session: Session) -> Tuple[Path, Path]:
        self._ensure_dir()
        json_path = self._path(session.id, ".json")
        md_path = self._path(session.id, ".md")
        _write_text(json_path, json.dumps(session.to_json_dict(), indent=2, ensure_ascii=False))
        _write_text(md_path, self.to_markdown(session))
        logger.info("session_saved id=%s messages=%d artifacts=%d", session.id, len(session.messages), len(session.artifacts))
        return json_path, md_path

    def to_markdown(self, session: Session) -> str:
        lines: List[str] = []
        lines.append(f"# Brainstorm: {session.title or session.id}")
        lines.append("")
        lines.append(f"Stage: {session.stage or DEFAULT_STAGE}")
        lines.append("")
        for msg in session.messages:
            speaker = "Assistant" if msg.role == "assistant" else "You"
            lines.append(f"## {speaker}")
            lines.append("")
            lines.append(msg.text)
            lines.append("")

        if session.artifacts:
            lines.append("---")
            lines.append("")
            lines.append("## Artifacts")
            lines.append("")
            for art in session.artifacts:
                lines.append(f"### {art.type} ({_local_time(art.created_at)})")
                if art.summary:
                    lines.append("")
                    lines.append(art.summary)
                    lines.append("")
                if art.data is not None:
                    lines.append("")
                    lines.append("```json")
                    lines.append(json.dumps(art.data, indent=2, ensure_ascii=False))
                    lines.append("```")
                    lines.append("")
        return "\n".join(lines)

    def load(self, session_id: str) -> Session:
        path = self._path(session_id, ".json")
        if not path.exists():
            raise FileNotFoundError(f"No saved session {session_id} in {self.sessions_dir}")
        with open(path, "r", encoding="utf-8") as f:
            return Session.model_validate(json.load(f))

    def list(self) -> List[SessionSummary]:
        self._ensure_dir()
        sessions: List[SessionSummary] = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                sessions.append(SessionSummary.model_validate(raw))
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                logger.warning("session_list_skip path=%s error=%s", path.name, exc)
        # newest first; sessions without a timestamp go last
        sessions.sort(key=lambda s: s.created_at or "", reverse=True)
        return sessions

    def delete(self, session_id: str) -> bool:
        removed = False
        for suffix in (".json", ".md"):
            p = self._path(session_id, suffix)
            if p.exists():
                p.unlink()
                removed = True
        if removed:
            logger.info("session_deleted id=%s", session_id)
        return removed
