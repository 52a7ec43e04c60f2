import os
import uuid
from typing import Any, Dict, Optional, Sequence

from brainstormer.config_loader import DEFAULT_CONFIG
from brainstormer.llm_utils import post_chat_completion
from brainstormer.schemas import Message

SYSTEM_PROMPT = " ".join([
    "You are a pragmatic product/engineering brainstorming partner.",
    "Favor concrete next steps, trade-off analysis, and lean experiments.",
    "Prefer bullet points, crisp writing, and numbered lists.",
])


class OpenAIAgent:
    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        name: Optional[str] = None,
        cfg: Optional[Dict[str, Any]] = None,
        agent_id: Optional[str] = None,
    ) -> None:
        cfg = cfg or DEFAULT_CONFIG
        self.id = agent_id or str(uuid.uuid4())
        self.name = name or "OpenAI Brainstormer"
        key = (api_key or os.environ.get("OPENAI_API_KEY", "")).strip()
        if not key:
            raise ValueError("OPENAI_API_KEY not set")
        self.api_key = key
        self.model = model or os.environ.get("OPENAI_MODEL") or cfg.get("openai_model") or "gpt-4o-mini"
        self.url = cfg.get("openai_base_url") or DEFAULT_CONFIG["openai_base_url"]
        self.temperature = float(cfg.get("temperature", 0.7))
        self.timeout = int(cfg.get("timeout_s", 60))
        self.max_retries = int(cfg.get("max_retries", 3))
        self.backoff_base_s = float(cfg.get("backoff_base_s", 0.75))
        self.show_bar = bool(cfg.get("show_api_bars", False))

    def build_messages(self, prompt: str, context: Sequence[Message] = ()):
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend({"role": m.role or "user", "content": m.text} for m in context)
        messages.append({"role": "user", "content": prompt})
        return messages

    def generate(self, prompt: str, context: Sequence[Message] = ()) -> Message:
        resp = post_chat_completion(
            self.url,
            self.api_key,
            self.model,
            self.build_messages(prompt, context),
            temperature=self.temperature,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_base_s=self.backoff_base_s,
            show_bar=self.show_bar,
            label=self.model,
        )
        if "error" in resp:
            err = resp["error"]
            raise RuntimeError(err.get("message") if isinstance(err, dict) else str(err))
        return Message(role="assistant", text=resp.get("output_text", ""))
