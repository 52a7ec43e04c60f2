from typing import Any, Dict, Optional, Protocol, Sequence, Tuple

from brainstormer.config_loader import env_key_set
from brainstormer.local_agent import LocalAgent
from brainstormer.log_utils import get_logger
from brainstormer.openai_agent import OpenAIAgent
from brainstormer.schemas import Message

logger = get_logger("agents")


class Agent(Protocol):
    id: str
    name: str

    def generate(self, prompt: str, context: Sequence[Message] = ()) -> Message:
        ...


def choose_agent(cfg: Dict[str, Any], model: Optional[str] = None, force_local: bool = False) -> Tuple[Agent, str]:
    """
    Pick the OpenAI agent when a key is available and local mode is off.

    Returns (agent, note) where note explains a downgrade to the local agent,
    or is empty.
    """
    if force_local or cfg.get("local_only"):
        logger.info("agent_choice local reason=%s", "flag" if force_local else "local_only")
        return LocalAgent(), ""
    if not env_key_set():
        logger.info("agent_choice local reason=no_api_key")
        return LocalAgent(), ""
    try:
        agent = OpenAIAgent(model=model, cfg=cfg)
    except ValueError as e:
        logger.warning("agent_choice fallback error=%s", e)
        return LocalAgent(), f"Falling back to local agent: {e}"
    logger.info("agent_choice openai model=%s", agent.model)
    return agent, ""


def generate_with_fallback(agent: Agent, prompt: str, context: Sequence[Message] = ()) -> Tuple[Message, Optional[str]]:
    """Generate a reply; on failure answer with the local agent and return the error text."""
    try:
        return agent.generate(prompt, context), None
    except Exception as e:
        logger.warning("generate_failed agent=%s error=%s", getattr(agent, "name", "unknown"), e)
        return LocalAgent().generate(prompt, context), str(e)
