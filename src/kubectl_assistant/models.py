# kubectl-assistant: Pydantic models for session state, user decisions and the chat completion wire format.

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CustomBaseModel(BaseModel):
    """Pydantic base model configured to forbid unknown fields for strict validation."""
    model_config = ConfigDict(extra="forbid")


class Action(str, Enum):
    pending = "Pending"
    apply = "Apply"
    dont_apply = "Don't Apply"
    reprompt = "Reprompt"


class Outcome(str, Enum):
    """How a session ended without an error."""
    printed = "printed"
    discarded = "discarded"
    applied = "applied"


class Decision(CustomBaseModel):
    """A single answer from the confirmation prompter, consumed once by the session loop."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    action: Action
    text: str = ""

    @classmethod
    def apply(cls) -> "Decision":
        return cls(action=Action.apply)

    @classmethod
    def dont_apply(cls) -> "Decision":
        return cls(action=Action.dont_apply)

    @classmethod
    def reprompt(cls, text: str) -> "Decision":
        return cls(action=Action.reprompt, text=text)


class SessionState(CustomBaseModel):
    """Mutable state owned by exactly one session loop."""

    history: List[str] = Field(..., min_length=1, description="Prompt history, append-only")
    last_completion: str = ""
    action: Action = Action.pending
    completions: int = 0

    def add_guidance(self, text: str) -> None:
        self.history.append(text)


# Wire models for /chat/completions responses. Unknown fields are ignored so
# provider-specific extras (Azure content filters, logprobs, ...) pass through.

class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FunctionCall(WireModel):
    name: str
    arguments: str = "{}"


class ToolCall(WireModel):
    id: str
    type: str = "function"
    function: FunctionCall


class ChatMessage(WireModel):
    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @field_validator("tool_calls", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return v or []

    def as_request_message(self) -> Dict[str, Any]:
        """Echo this assistant turn back into the next request."""
        msg: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        return msg


class Choice(WireModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class Usage(WireModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(WireModel):
    choices: List[Choice] = Field(..., min_length=1)
    usage: Optional[Usage] = None
