from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from brainstormer import chat_ui
from brainstormer.agents import Agent, generate_with_fallback
from brainstormer.artifacts import ARTIFACT_TYPES, attach_artifact, generate_artifact
from brainstormer.log_utils import get_logger
from brainstormer.schemas import Message, Session
from brainstormer.session_store import SessionStore
from brainstormer.stages import STAGES, is_valid_stage, next_stage

logger = get_logger("chat")


@dataclass
class ChatState:
    session: Session
    agent: Agent
    store: SessionStore
    fallbacks: int = 0


def saved_label(session: Session) -> str:
    return f"sessions/{session.id}.{{json,md}}"


def save(state: ChatState) -> Path:
    json_path, _ = state.store.save(state.session)
    chat_ui.notice(f"Saved to {saved_label(state.session)}")
    return json_path


def ask(state: ChatState, text: str) -> Message:
    """Record a user message, get the agent's reply and record that too."""
    context = list(state.session.messages)
    state.session.messages.append(Message(role="user", text=text))
    reply, error = generate_with_fallback(state.agent, text, context)
    if error is not None:
        state.fallbacks += 1
        chat_ui.warn(f"Generation failed ({error}); answered with the local agent.")
    state.session.messages.append(reply)
    chat_ui.print_reply(reply.text)
    return reply


def set_stage(session: Session, target: str) -> str:
    """Apply '/stage <name|next>' to the session and return the new stage."""
    target = target.strip().lower()
    if target == "next":
        session.stage = next_stage(session.stage)
    elif is_valid_stage(target):
        session.stage = target
    else:
        raise ValueError(f"Unknown stage: {target} (choose from {', '.join(STAGES)} or next)")
    return session.stage


def _cmd_artifact(state: ChatState, args: List[str]) -> None:
    if not args or args[0] not in ARTIFACT_TYPES:
        chat_ui.warn(f"Usage: /artifact <{'|'.join(ARTIFACT_TYPES)}>")
        return
    artifact = attach_artifact(state.session, generate_artifact(args[0], state.session, state.agent))
    chat_ui.render_artifact(artifact)


def _cmd_stage(state: ChatState, args: List[str]) -> None:
    if not args:
        chat_ui.notice(f"Stage: {state.session.stage} (stages: {', '.join(STAGES)})")
        return
    try:
        stage = set_stage(state.session, args[0])
    except ValueError as e:
        chat_ui.warn(str(e))
        return
    logger.info("stage_changed id=%s stage=%s", state.session.id, stage)
    chat_ui.notice(f"Stage: {stage}")


def _cmd_title(state: ChatState, args: List[str]) -> None:
    title = " ".join(args).strip()
    if not title:
        chat_ui.notice(f"Title: {state.session.title}")
        return
    state.session.title = title
    chat_ui.notice(f"Title: {title}")


def handle_line(state: ChatState, line: str) -> bool:
    """Process one line of input. Returns False when the loop should stop."""
    trimmed = (line or "").strip()
    if not trimmed:
        return True
    if not trimmed.startswith("/"):
        ask(state, trimmed)
        return True

    cmd, args = chat_ui.parse_slash(trimmed)
    if cmd in ("/exit", "/quit"):
        save(state)
        return False
    if cmd == "/save":
        save(state)
    elif cmd == "/help":
        chat_ui.render_help()
    elif cmd == "/artifact":
        _cmd_artifact(state, args)
    elif cmd == "/stage":
        _cmd_stage(state, args)
    elif cmd == "/title":
        _cmd_title(state, args)
    elif cmd == "/status":
        chat_ui.render_status(state.session, state.agent.name, getattr(state.agent, "model", ""))
    elif cmd == "/sessions":
        chat_ui.render_sessions(state.store.list())
    else:
        chat_ui.warn(f"Unknown command {cmd}; type /help for commands.")
    return True


def run_loop(state: ChatState, history_dir: Optional[Path] = None, initial_prompt: str = "") -> int:
    """Answer initial_prompt, then read lines until /exit, EOF or Ctrl-C.

    Ctrl-C while the agent is generating saves the session too.
    """
    readline_mod, history_path = (None, None)
    if history_dir is not None:
        readline_mod, history_path = chat_ui.setup_readline(history_dir, chat_ui.get_slash_commands())
    try:
        try:
            if initial_prompt:
                ask(state, initial_prompt)
            chat_ui.notice("Type /help for commands, /exit to save and quit.")
            while handle_line(state, chat_ui.read_input()):
                pass
        except (EOFError, KeyboardInterrupt):
            chat_ui.console.print()
            save(state)
    finally:
        chat_ui.save_history(readline_mod, history_path)
    logger.info("chat_end id=%s messages=%d fallbacks=%d", state.session.id, len(state.session.messages), state.fallbacks)
    return 0
