"""MCP tool catalog for the human relay.

Each tool is a closed variant: a pydantic model for its arguments plus a call
type that knows which :class:`~discord_human_relay.relay.Human` operation it
invokes. Dispatch is by tool name through :data:`TOOL_SPECS`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional, Union

import mcp.types as types
from pydantic import BaseModel, Field, ValidationError, field_validator

from .relay.human import Human

ASK_HUMAN = "ask_human"
LOG_CONVERSATION = "log_conversation"


class ToolCallError(Exception):
    """Raised when a tool call names an unknown tool or carries bad arguments."""


class AskHumanArgs(BaseModel):
    question: str = Field(
        ...,
        description=(
            "The question to ask the human. Be specific and provide context to "
            "help the human understand what information you need."
        ),
    )

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be empty")
        return value


class LogConversationArgs(BaseModel):
    role: Literal["human", "assistant", "system", "other"] = Field(
        ...,
        description="Who produced the message: human, assistant, system or other.",
    )
    message: str = Field(..., min_length=1, description="The message to record.")
    context: Optional[str] = Field(
        default=None,
        description="Optional extra context shown as a footer, e.g. a task or build id.",
    )


@dataclass(frozen=True)
class AskHumanCall:
    args: AskHumanArgs

    async def invoke(self, human: Human) -> str:
        return await human.ask(self.args.question)


@dataclass(frozen=True)
class LogConversationCall:
    args: LogConversationArgs

    async def invoke(self, human: Human) -> str:
        return await human.log_conversation(
            self.args.role, self.args.message, self.args.context
        )


ToolCall = Union[AskHumanCall, LogConversationCall]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    call_type: type

    def definition(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.args_model.model_json_schema(),
        )


TOOL_SPECS: Mapping[str, ToolSpec] = {
    ASK_HUMAN: ToolSpec(
        name=ASK_HUMAN,
        description=(
            "Ask a human for information that only they would know, such as "
            "personal preferences, project-specific context, local environment "
            "details, or non-public information"
        ),
        args_model=AskHumanArgs,
        call_type=AskHumanCall,
    ),
    LOG_CONVERSATION: ToolSpec(
        name=LOG_CONVERSATION,
        description=(
            "Record a conversation entry in the Discord log thread so there is a "
            "durable record of the session. Call it for notable messages from "
            "the human, the assistant or the system."
        ),
        args_model=LogConversationArgs,
        call_type=LogConversationCall,
    ),
}


def list_tool_definitions() -> list[types.Tool]:
    return [spec.definition() for spec in TOOL_SPECS.values()]


def parse_tool_call(name: str, arguments: Optional[Mapping[str, Any]]) -> ToolCall:
    spec = TOOL_SPECS.get(name)
    if spec is None:
        raise ToolCallError(f"Unknown tool: {name}")
    try:
        args = spec.args_model.model_validate(dict(arguments or {}))
    except ValidationError as exc:
        raise ToolCallError(f"Failed to parse {name} tool: {exc}") from exc
    return spec.call_type(args)


async def call_tool(
    human: Human, name: str, arguments: Optional[Mapping[str, Any]]
) -> str:
    return await parse_tool_call(name, arguments).invoke(human)
