import datetime
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from brainstormer.stages import DEFAULT_STAGE, STAGES, is_valid_stage


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    """UTC timestamp with millisecond precision and a trailing Z."""
    return datetime.datetime.now(datetime.UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Message(BaseModel):
    id: str = Field(default_factory=new_id)
    role: str = Field("user", pattern="^(user|assistant|system)$")
    text: str = ""


class Artifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    type: str = Field(..., pattern="^(lean-canvas|gtm-plan|one-pager)$")
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    source: str = "unknown"
    data: Optional[Any] = None
    summary: str = ""


class Session(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default_factory=new_id)
    title: str = "Untitled"
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    stage: str = DEFAULT_STAGE
    messages: List[Message] = Field(default_factory=list)
    ideas: List[Any] = Field(default_factory=list)
    artifacts: List[Artifact] = Field(default_factory=list)
    experiments: List[Any] = Field(default_factory=list)
    competitors: List[Any] = Field(default_factory=list)
    scoring: Optional[Dict[str, Any]] = None

    @field_validator("stage")
    @classmethod
    def _known_stage(cls, value: str) -> str:
        if not is_valid_stage(value):
            raise ValueError(f"stage must be one of {', '.join(STAGES)}")
        return value

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SessionSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    stage: Optional[str] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
