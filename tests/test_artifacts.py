import datetime
import json

import pytest

from brainstormer import artifacts
from brainstormer.local_agent import LocalAgent
from brainstormer.schemas import Message
from brainstormer.session_store import create_empty_session


class ScriptedAgent:
    name = "Scripted"

    def __init__(self, text):
        self.text = text
        self.prompts = []

    def generate(self, prompt, context=()):
        self.prompts.append(prompt)
        return Message(role="assistant", text=self.text)


class FailingAgent:
    name = "Failing"

    def generate(self, prompt, context=()):
        raise RuntimeError("quota exceeded")


def _session():
    s = create_empty_session("Dog walking marketplace")
    for i in range(8):
        s.messages.append(Message(role="user" if i % 2 == 0 else "assistant", text=f"m{i}"))
    return s


def test_unknown_type_raises():
    with pytest.raises(ValueError, match="Unknown artifact type: deck"):
        artifacts.generate_artifact("deck", _session(), LocalAgent())


def test_json_reply_becomes_data():
    agent = ScriptedAgent(json.dumps({"problem": "p", "nextSteps": ["a"]}))
    art = artifacts.generate_artifact("one-pager", _session(), agent)
    assert art.type == "one-pager"
    assert art.data == {"problem": "p", "nextSteps": ["a"]}
    assert art.summary == ""
    assert art.source == "Scripted"


def test_fenced_json_reply_is_accepted():
    agent = ScriptedAgent('```json\n{"icp": {"persona": "PM"}}\n```')
    art = artifacts.generate_artifact("gtm-plan", _session(), agent)
    assert art.data == {"icp": {"persona": "PM"}}


def test_non_json_reply_uses_heuristic_and_keeps_text():
    art = artifacts.generate_artifact("lean-canvas", _session(), LocalAgent())
    assert art.summary.startswith("Brainstorming on: Create a Lean Canvas")
    assert art.data["uniqueValueProp"] == "Faster path to clarity for Dog walking marketplace with actionable outputs"
    assert art.source == "Local Brainstormer"


def test_json_array_reply_is_not_data():
    art = artifacts.generate_artifact("one-pager", _session(), ScriptedAgent("[1, 2]"))
    assert art.summary == "[1, 2]"
    assert art.data == artifacts.heuristic_one_pager("Dog walking marketplace")


def test_agent_failure_uses_heuristic():
    art = artifacts.generate_artifact("gtm-plan", _session(), FailingAgent())
    assert art.summary == "Generation failed, using heuristic: quota exceeded"
    assert [c["name"] for c in art.data["channels"]] == ["Communities", "Content", "Founder-led sales"]


def test_source_unknown_without_name():
    class Nameless:
        def generate(self, prompt, context=()):
            return Message(role="assistant", text="{}")

    art = artifacts.generate_artifact("one-pager", _session(), Nameless())
    assert art.source == "unknown"


def test_prompts_include_topic_and_recent_notes():
    s = _session()
    prompt = artifacts.lean_canvas_prompt(s)
    assert "Return ONLY a JSON object" in prompt
    assert "Idea/context: Dog walking marketplace" in prompt
    assert "- (user) m2" in prompt and "- (assistant) m7" in prompt
    assert "- (assistant) m1" not in prompt
    assert "Recent notes:" in artifacts.gtm_plan_prompt(s)
    assert "Recent notes:" not in artifacts.one_pager_prompt(s)


def test_topic_fallbacks():
    s = create_empty_session()
    s.title = ""
    assert artifacts.session_topic(s) == "Business idea"
    s.messages.append(Message(role="user", text="first"))
    assert artifacts.session_topic(s) == "first"


def test_gtm_milestones_are_relative_to_now():
    now = datetime.datetime(2025, 1, 1, tzinfo=datetime.UTC)
    data = artifacts.heuristic_gtm_plan("x", now=now)
    assert data["milestones"][0]["targetDate"] == "2025-01-22T00:00:00.000Z"
    assert data["milestones"][1]["targetDate"] == "2025-02-15T00:00:00.000Z"


def test_parse_json_object():
    assert artifacts.parse_json_object('{"a": 1}') == {"a": 1}
    assert artifacts.parse_json_object("```\n{\"a\": 1}\n```") == {"a": 1}
    assert artifacts.parse_json_object("nope") is None
    assert artifacts.parse_json_object("") is None


def test_attach_artifact():
    s = _session()
    art = artifacts.attach_artifact(s, artifacts.generate_artifact("one-pager", s, FailingAgent()))
    assert s.artifacts == [art]
