"""Planning artifacts (Lean Canvas, GTM plan, one-pager) derived from a session.

Each generator asks the agent for a bare JSON object. When the agent fails or
answers with something that is not a JSON object, heuristic data built from the
session topic is used instead and the reason is kept in the artifact summary.
"""

import datetime
import json
import re
from typing import Any, Callable, Dict, Optional, Tuple

from brainstormer.log_utils import get_logger
from brainstormer.schemas import Artifact, Session

logger = get_logger("artifacts")

ARTIFACT_TYPES = ("lean-canvas", "gtm-plan", "one-pager")

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def session_topic(session: Session) -> str:
    if session.title:
        return session.title
    if session.messages:
        return session.messages[0].text
    return "Business idea"


def recent_notes(session: Session, limit: int = 6) -> str:
    return "\n".join(f"- ({m.role}) {m.text}" for m in session.messages[-limit:])


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object, tolerating a surrounding ```json fence."""
    s = (text or "").strip()
    m = _FENCE_RE.match(s)
    if m:
        s = m.group(1).strip()
    try:
        data = json.loads(s)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _run(agent, session: Session, prompt: str, heuristic: Callable[[], Dict[str, Any]]) -> Tuple[Dict[str, Any], str]:
    try:
        reply = agent.generate(prompt, session.messages)
    except Exception as e:
        logger.warning("artifact_generation_failed error=%s", e)
        return heuristic(), f"Generation failed, using heuristic: {e}"
    text = getattr(reply, "text", "") or ""
    data = parse_json_object(text)
    if data is None:
        logger.info("artifact_reply_not_json chars=%d", len(text))
        return heuristic(), text
    return data, ""


def _artifact(kind: str, agent, data: Dict[str, Any], summary: str) -> Artifact:
    return Artifact(type=kind, source=getattr(agent, "name", None) or "unknown", data=data, summary=summary)


# --- Lean Canvas ---

def lean_canvas_prompt(session: Session) -> str:
    return f"""Create a Lean Canvas for the idea described below. Return ONLY a JSON object matching this TypeScript type:
  {{
    "problem": string[];
    "customerSegments": string[];
    "existingAlternatives": string[];
    "solution": string[];
    "uniqueValueProp": string;
    "unfairAdvantage": string;
    "channels": string[];
    "keyMetrics": string[];
    "costStructure": string[];
    "revenueStreams": string[];
    "topAssumptions": string[];
  }}
  Idea/context: {session_topic(session)}
  Recent notes:
{recent_notes(session)}"""


def heuristic_lean_canvas(topic: str) -> Dict[str, Any]:
    return {
        "problem": [
            f"Time-consuming workflows around {topic}",
            f"High uncertainty about market and ICP for {topic}",
        ],
        "customerSegments": ["Early adopters", "SMB teams", "Indie makers"],
        "existingAlternatives": ["Generic tools", "Manual processes", "Spreadsheets"],
        "solution": [f"A focused solution targeting core jobs related to {topic}"],
        "uniqueValueProp": f"Faster path to clarity for {topic} with actionable outputs",
        "unfairAdvantage": "Opinionated workflow and fast iteration",
        "channels": ["Communities", "Content", "Founder-led sales"],
        "keyMetrics": ["Activation", "Weekly active users", "Retention D30"],
        "costStructure": ["Hosting", "LLM usage", "Founder time"],
        "revenueStreams": ["Subscriptions", "Consulting add-ons"],
        "topAssumptions": ["ICP willingness to pay", "Channel ROI"],
    }


def generate_lean_canvas(session: Session, agent) -> Artifact:
    topic = session_topic(session)
    data, summary = _run(agent, session, lean_canvas_prompt(session), lambda: heuristic_lean_canvas(topic))
    return _artifact("lean-canvas", agent, data, summary)


# --- GTM plan ---

def gtm_plan_prompt(session: Session) -> str:
    return f"""Create a concise GTM plan for the idea below. Return ONLY JSON:
  {{
    "icp": {{ "persona": string, "companyProfile": string, "painPoints": string[] }},
    "positioning": {{ "statement": string, "keyBenefits": string[] }},
    "channels": Array<{{ name: string, hypothesis: string, betSize: 'small'|'medium'|'large' }}>,
    "pricing": {{ "model": string, "initialPrice": string, "assumptions": string[] }},
    "milestones": Array<{{ name: string, targetDate: string }}>,
    "metrics": string[],
    "risks": string[]
  }}
  Idea/context: {session_topic(session)}
  Recent notes:
{recent_notes(session)}"""


def _days_from_now(days: int, now: Optional[datetime.datetime] = None) -> str:
    base = now or datetime.datetime.now(datetime.UTC)
    return (base + datetime.timedelta(days=days)).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def heuristic_gtm_plan(topic: str, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    return {
        "icp": {
            "persona": "Founder or PM at early-stage startup",
            "companyProfile": "SaaS or tooling, 2–20 people",
            "painPoints": ["Unclear positioning", "Slow validation", "Ad hoc planning"],
        },
        "positioning": {
            "statement": f"For builders, {topic} accelerates going from idea to plan with actionable artifacts",
            "keyBenefits": ["Structure", "Speed", "Shareable outputs"],
        },
        "channels": [
            {"name": "Communities", "hypothesis": "Reach ICP where they hang", "betSize": "small"},
            {"name": "Content", "hypothesis": "SEO and templates attract intent", "betSize": "medium"},
            {"name": "Founder-led sales", "hypothesis": "High signal early feedback", "betSize": "small"},
        ],
        "pricing": {
            "model": "Freemium → Pro subscription",
            "initialPrice": "$15–$29/mo",
            "assumptions": ["Activation to paid > 5%"],
        },
        "milestones": [
            {"name": "MVP with Lean Canvas + GTM", "targetDate": _days_from_now(21, now)},
            {"name": "Public launch", "targetDate": _days_from_now(45, now)},
        ],
        "metrics": ["WAU", "Activation rate", "Export count/user"],
        "risks": ["LLM reliability", "Narrow TAM if too niche"],
    }


def generate_gtm_plan(session: Session, agent) -> Artifact:
    topic = session_topic(session)
    data, summary = _run(agent, session, gtm_plan_prompt(session), lambda: heuristic_gtm_plan(topic))
    return _artifact("gtm-plan", agent, data, summary)


# --- One-pager ---

def one_pager_prompt(session: Session) -> str:
    return f"""Draft a crisp one-pager. Return ONLY JSON:
  {{
    "problem": string,
    "audience": string,
    "solution": string,
    "whyNow": string,
    "differentiation": string,
    "nextSteps": string[]
  }}
  Idea/context: {session_topic(session)}"""


def heuristic_one_pager(topic: str) -> Dict[str, Any]:
    return {
        "problem": f"Turning {topic} from concept into an executable plan is slow and unstructured",
        "audience": "Solo founders and small product teams",
        "solution": "A guided workspace that produces Lean Canvas, GTM plan, and exportable docs",
        "whyNow": "LLMs enable fast structured drafting; many new builders entering market",
        "differentiation": "Opinionated workflow + high-quality exports; local-first",
        "nextSteps": ["Ship MVP", "Run 5 founder interviews", "Launch in communities"],
    }


def generate_one_pager(session: Session, agent) -> Artifact:
    topic = session_topic(session)
    data, summary = _run(agent, session, one_pager_prompt(session), lambda: heuristic_one_pager(topic))
    return _artifact("one-pager", agent, data, summary)


_GENERATORS: Dict[str, Callable[[Session, Any], Artifact]] = {
    "lean-canvas": generate_lean_canvas,
    "gtm-plan": generate_gtm_plan,
    "one-pager": generate_one_pager,
}


def generate_artifact(kind: str, session: Session, agent) -> Artifact:
    gen = _GENERATORS.get(kind)
    if gen is None:
        raise ValueError(f"Unknown artifact type: {kind}")
    artifact = gen(session, agent)
    logger.info("artifact_generated type=%s source=%s id=%s", kind, artifact.source, artifact.id)
    return artifact


def attach_artifact(session: Session, artifact: Artifact) -> Artifact:
    session.artifacts.append(artifact)
    return artifact
