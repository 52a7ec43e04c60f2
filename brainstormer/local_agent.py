import uuid
from typing import Optional, Sequence

from brainstormer.schemas import Message

SEED_IDEAS = (
    "List assumptions and unknowns; plan quick validations.",
    "Generate 3-5 user stories; identify core job-to-be-done.",
    "Map solution variants from scrappy to polished; compare trade-offs.",
    "Enumerate risks (technical, market, execution) and mitigations.",
    "Draft a one-pager: problem, audience, value, differentiation, next steps.",
)


class LocalAgent:
    """Offline brainstormer: same prompt in, same scaffold out."""

    def __init__(self, name: Optional[str] = None, agent_id: Optional[str] = None) -> None:
        self.id = agent_id or str(uuid.uuid4())
        self.name = name or "Local Brainstormer"

    def generate(self, prompt: str, context: Sequence[Message] = ()) -> Message:
        from_context = [f"- Related note {i}: {m.text}" for i, m in enumerate(list(context)[-3:], 1)]
        lines = [f"Brainstorming on: {prompt}", "", "Consider:"]
        lines.extend(f"- {s}" for s in SEED_IDEAS)
        if from_context:
            lines.extend(["", "Context: "] + from_context)
        lines.extend(["", "Next: choose one path and ask me to expand or prioritize."])
        return Message(role="assistant", text="\n".join(lines))
