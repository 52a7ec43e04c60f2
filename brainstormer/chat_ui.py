import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from brainstormer.schemas import Artifact, Session, SessionSummary

console = Console()


def get_slash_commands() -> List[str]:
    return ["/help", "/save", "/artifact", "/stage", "/title", "/status", "/sessions", "/exit", "/quit"]


def get_command_descriptions() -> Dict[str, str]:
    return {
        "/help": "show commands",
        "/save": "save session to sessions/<id>.{json,md}",
        "/artifact": "generate lean-canvas | gtm-plan | one-pager",
        "/stage": "show stage, or set it (<name> | next)",
        "/title": "rename the session",
        "/status": "show session and agent info",
        "/sessions": "list saved sessions",
        "/exit": "save and exit",
        "/quit": "save and exit",
    }


def parse_slash(line: str) -> Tuple[str, List[str]]:
    """Split '/cmd arg1 arg2' into ('/cmd', ['arg1', 'arg2'])."""
    parts = line.strip().split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def setup_readline(logs_dir: Path, slash_commands: List[str]) -> Tuple[Optional[object], Optional[Path]]:
    try:
        import readline as _readline
    except ImportError:
        return None, None

    def completer(text: str, state: int) -> Optional[str]:
        buffer = _readline.get_line_buffer()
        if not buffer.startswith("/"):
            return None
        matches = [c for c in slash_commands if c.startswith(buffer)]
        return matches[state] if state < len(matches) else None

    _readline.set_completer(completer)
    _readline.set_completer_delims(" \t\n")
    _readline.parse_and_bind("tab: complete")

    history_path = None
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        history_path = logs_dir / "brainstorm_history.txt"
        if history_path.exists():
            _readline.read_history_file(str(history_path))
        _readline.set_history_length(1000)
    except OSError:
        history_path = None
    return _readline, history_path


def save_history(readline_mod: Optional[object], history_path: Optional[Path]) -> None:
    if not (readline_mod and history_path):
        return
    try:
        readline_mod.write_history_file(str(history_path))
    except OSError:
        pass


def read_input(prompt: str = "You") -> str:
    return console.input(f"[bold green]{prompt}[/bold green] [dim]›[/dim] ")


def print_reply(text: str) -> None:
    console.print()
    console.print(text, style="cyan", markup=False, highlight=False)
    console.print()


def notice(msg: str) -> None:
    console.print(msg, style="dim", markup=False)


def warn(msg: str) -> None:
    console.print(msg, style="yellow", markup=False)


def render_help() -> None:
    table = Table(title="Commands", show_header=True, header_style="cyan")
    table.add_column("command", style="white")
    table.add_column("description", style="dim")
    for cmd, desc in get_command_descriptions().items():
        table.add_row(cmd, desc)
    console.print(table)


def render_sessions(sessions: Sequence[SessionSummary], title: str = "Sessions") -> None:
    if not sessions:
        notice("No saved sessions.")
        return
    table = Table(title=title, show_header=True, header_style="cyan")
    table.add_column("id", style="white", no_wrap=True)
    table.add_column("title", style="white")
    table.add_column("stage", style="dim")
    table.add_column("created", style="dim")
    for s in sessions:
        table.add_row(s.id, s.title or "", s.stage or "", s.created_at or "")
    console.print(table)


def render_artifact(artifact: Artifact) -> None:
    parts: List[Any] = []
    if artifact.summary:
        parts.append(Text(artifact.summary, style="yellow"))
    if artifact.data is not None:
        parts.append(Syntax(json.dumps(artifact.data, indent=2, ensure_ascii=False), "json", word_wrap=True))
    console.print(Panel(Group(*parts), title=f"{artifact.type} ({artifact.source})", border_style="cyan"))


def render_status(session: Session, agent_name: str, model: str = "") -> None:
    table = Table(title="Status", show_header=True, header_style="cyan")
    table.add_column("field", style="cyan")
    table.add_column("value", style="white")
    rows = [
        ("session", session.id),
        ("title", session.title),
        ("stage", session.stage),
        ("messages", str(len(session.messages))),
        ("artifacts", str(len(session.artifacts))),
        ("agent", agent_name),
    ]
    if model:
        rows.append(("model", model))
    for k, v in rows:
        table.add_row(k, v)
    console.print(table)


def render_markdown(text: str) -> None:
    console.print(Markdown(text))
