import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from brainstormer import __version__, chat_ui
from brainstormer.agents import choose_agent
from brainstormer.artifacts import ARTIFACT_TYPES, attach_artifact, generate_artifact
from brainstormer.chat import ChatState, run_loop, saved_label, set_stage
from brainstormer.config_loader import data_root, ensure_dirs, load_config, load_env, logs_dir
from brainstormer.log_utils import setup_logger
from brainstormer.session_store import SessionStore, create_empty_session
from brainstormer.stages import STAGES

_CLI_LOGGER: Optional[logging.Logger] = None


def _get_cli_logger(cfg: Dict[str, Any]) -> logging.Logger:
    global _CLI_LOGGER
    if _CLI_LOGGER:
        return _CLI_LOGGER
    # package-level logger so module loggers (brainstormer.*) share the file handler
    setup_logger(logs_dir(cfg) / "brainstorm.log", name="brainstormer")
    _CLI_LOGGER = logging.getLogger("brainstormer.cli")
    return _CLI_LOGGER


def _store(cfg: Dict[str, Any]) -> SessionStore:
    return SessionStore(data_root(cfg))


def _agent(cfg: Dict[str, Any], args: argparse.Namespace):
    agent, note = choose_agent(cfg, model=getattr(args, "model", None), force_local=bool(getattr(args, "local", False)))
    if note:
        chat_ui.warn(note)
    return agent


def cmd_chat(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    store = _store(cfg)
    agent = _agent(cfg, args)
    prompt = (getattr(args, "prompt", None) or "").strip()
    resume = getattr(args, "resume", None)
    if resume:
        session = store.load(resume)
        chat_ui.notice(f"Resumed {session.title} ({len(session.messages)} messages, stage {session.stage})")
    else:
        session = create_empty_session(prompt or "Brainstorm Session")
    _get_cli_logger(cfg).info("chat_start id=%s agent=%s resume=%s", session.id, agent.name, bool(resume))
    state = ChatState(session=session, agent=agent, store=store)
    return run_loop(state, history_dir=logs_dir(cfg), initial_prompt=prompt)


def cmd_sessions(cfg: Dict[str, Any], as_json: bool = False) -> int:
    sessions = _store(cfg).list()
    if as_json:
        print(json.dumps([s.model_dump(by_alias=True) for s in sessions], ensure_ascii=False, indent=2))
        return 0
    chat_ui.render_sessions(sessions)
    return 0


def cmd_show(cfg: Dict[str, Any], session_id: str, raw: bool = False) -> int:
    store = _store(cfg)
    text = store.to_markdown(store.load(session_id))
    if raw:
        print(text)
    else:
        chat_ui.render_markdown(text)
    return 0


def cmd_artifact(cfg: Dict[str, Any], args: argparse.Namespace) -> int:
    store = _store(cfg)
    session = store.load(args.session_id)
    agent = _agent(cfg, args)
    artifact = attach_artifact(session, generate_artifact(args.type, session, agent))
    store.save(session)
    chat_ui.render_artifact(artifact)
    chat_ui.notice(f"Saved to {saved_label(session)}")
    return 0


def cmd_stage(cfg: Dict[str, Any], session_id: str, target: Optional[str] = None) -> int:
    store = _store(cfg)
    session = store.load(session_id)
    if target:
        set_stage(session, target)
        store.save(session)
        _get_cli_logger(cfg).info("stage_changed id=%s stage=%s", session.id, session.stage)
    print(session.stage)
    return 0


def cmd_delete(cfg: Dict[str, Any], session_id: str) -> int:
    if _store(cfg).delete(session_id):
        chat_ui.notice(f"Deleted sessions/{session_id}.{{json,md}}")
        return 0
    print(f"error: no saved session {session_id}", file=sys.stderr)
    return 1


def _add_agent_args(p: argparse.ArgumentParser, suppress: bool = False) -> None:
    # subcommands only override the top-level values when given explicitly
    default = argparse.SUPPRESS if suppress else None
    p.add_argument("-m", "--model", default=default, help="OpenAI model name (e.g., gpt-4o-mini)")
    p.add_argument("--local", action="store_true", default=argparse.SUPPRESS if suppress else False,
                   help="Force local agent even if OPENAI_API_KEY is set")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="brainstorm", description="Interactive brainstorming CLI (local-first, OpenAI optional)")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("-p", "--prompt", default=None, help="Initial prompt to start with")
    _add_agent_args(parser)
    sub = parser.add_subparsers(dest="command", required=False)

    p_chat = sub.add_parser("chat", help="Start an interactive brainstorming session (default)")
    p_chat.add_argument("-p", "--prompt", default=argparse.SUPPRESS, help="Initial prompt to start with")
    p_chat.add_argument("--resume", default=None, help="Continue a saved session by id")
    _add_agent_args(p_chat, suppress=True)
    p_chat.set_defaults(func=cmd_chat)

    p_list = sub.add_parser("sessions", help="List saved sessions, newest first")
    p_list.add_argument("--json", action="store_true", help="Emit JSON output")
    p_list.set_defaults(func=lambda cfg, args: cmd_sessions(cfg, as_json=args.json))

    p_show = sub.add_parser("show", help="Print a saved session as Markdown")
    p_show.add_argument("session_id", help="Session id")
    p_show.add_argument("--raw", action="store_true", help="Print the Markdown source instead of rendering it")
    p_show.set_defaults(func=lambda cfg, args: cmd_show(cfg, args.session_id, raw=args.raw))

    p_art = sub.add_parser("artifact", help="Generate an artifact for a saved session")
    p_art.add_argument("type", choices=ARTIFACT_TYPES, help="Artifact type")
    p_art.add_argument("session_id", help="Session id")
    _add_agent_args(p_art, suppress=True)
    p_art.set_defaults(func=cmd_artifact)

    p_stage = sub.add_parser("stage", help="Show or set a saved session's stage")
    p_stage.add_argument("session_id", help="Session id")
    p_stage.add_argument("target", nargs="?", choices=list(STAGES) + ["next"], help="New stage, or 'next'")
    p_stage.set_defaults(func=lambda cfg, args: cmd_stage(cfg, args.session_id, args.target))

    p_del = sub.add_parser("delete", help="Delete a saved session")
    p_del.add_argument("session_id", help="Session id")
    p_del.set_defaults(func=lambda cfg, args: cmd_delete(cfg, args.session_id))

    return parser


def main(argv: List[str] = None) -> int:
    load_env()
    cfg = load_config()
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(argv)
    if args.version:
        print(__version__)
        return 0
    command = getattr(args, "command", None) or "chat"
    func = getattr(args, "func", cmd_chat)
    try:
        ensure_dirs(cfg)
        _get_cli_logger(cfg).info("cli_command %s", command)
        return func(cfg, args)
    except Exception as e:
        try:
            _get_cli_logger(cfg).exception("cli_exception %s", command)
        except OSError:
            pass
        print(f"error: {e}", file=sys.stderr)
        return 1
