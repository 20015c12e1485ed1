"""Framework-agnostic message and result types.

These types are used across all implementations and define the common
vocabulary for agent execution.
"""

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Message role discriminant."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A request from the model to invoke a named tool.

    Attributes:
        id: Identifier pairing this call with its result
        name: Name of the tool in the catalog
        args: JSON arguments for the tool
    """

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of exactly one ToolCall.

    Attributes:
        tool_call_id: ID of the ToolCall this result answers
        name: Tool name
        output: Structured or text output (error text when is_error is set)
        is_error: Whether the invocation failed
    """

    tool_call_id: str
    name: str
    output: Any
    is_error: bool = False

    @property
    def content(self) -> str:
        """Output rendered as message text."""
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, default=str)

    def to_message(self) -> "Message":
        return Message(
            role=Role.TOOL,
            content=self.content,
            tool_call_id=self.tool_call_id,
            name=self.name,
        )


@dataclass(frozen=True)
class Message:
    """Framework-agnostic message representation.

    Attributes:
        role: Message role
        content: Message text content
        tool_calls: Tool calls requested by an assistant message
        tool_call_id: ID of the tool call this message responds to (for tool messages)
        name: Tool name (for tool messages)
    """

    role: Role
    content: str
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    @property
    def has_pending_tool_calls(self) -> bool:
        return self.role == Role.ASSISTANT and bool(self.tool_calls)

    @property
    def has_tool_output(self) -> bool:
        return self.role == Role.TOOL and bool(self.content)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict, omitting unset tool fields."""
        result: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
        }
        if self.tool_calls:
            result["tool_calls"] = [
                {"id": tc.id, "name": tc.name, "args": tc.args} for tc in self.tool_calls
            ]
        if self.tool_call_id is not None:
            result["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            result["name"] = self.name
        return result


@dataclass(frozen=True)
class ExecutionResult:
    """Result of agent execution.

    Attributes:
        response: Final assistant response text
        messages: Full conversation history as framework-agnostic Messages
        reasoning_steps: Number of reasoning iterations performed
        thread_id: Conversation thread identifier
        metadata: Additional framework-specific metadata
    """

    response: str
    messages: list[Message]
    reasoning_steps: int
    thread_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
