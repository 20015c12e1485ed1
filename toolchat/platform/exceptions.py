"""Exception hierarchy for the chat service.

This module defines the errors raised across the orchestration loop, the
wire protocol codec and the chat API, grouped the way callers handle them.
"""


class ToolchatError(Exception):
    """Base exception for all service errors."""


class UnauthorizedError(ToolchatError):
    """Raised when the caller may not operate on a chat thread."""

    def __init__(self, message: str, user_id: str | None = None):
        self.user_id = user_id
        super().__init__(f"Unauthorized: {message}")


class ChatNotFoundError(ToolchatError):
    """Raised when a chat thread does not exist."""

    def __init__(self, chat_id: str):
        self.chat_id = chat_id
        super().__init__(f"Chat not found: {chat_id}")


class BackendFailureError(ToolchatError):
    """Base exception for model and tool backend failures."""


class ModelBackendError(BackendFailureError):
    """Raised when the language model backend fails. Fatal to the run."""

    def __init__(self, message: str, model_name: str | None = None):
        self.model_name = model_name
        model_info = f" [{model_name}]" if model_name else ""
        super().__init__(f"Model backend failed{model_info}: {message}")


class ToolBackendError(BackendFailureError):
    """Raised when a tool invocation fails. Recoverable within a run."""

    def __init__(self, message: str, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class StreamProtocolError(ToolchatError):
    """Raised when the event stream violates the wire protocol."""


class StreamOrderError(StreamProtocolError):
    """Raised when events are emitted out of the allowed order."""


class PendingToolBlockNotFoundError(StreamProtocolError):
    """Raised when a tool_end event has no matching pending tool block."""

    def __init__(self, tool: str, tool_call_id: str | None):
        self.tool = tool
        self.tool_call_id = tool_call_id
        id_info = f" (id: {tool_call_id})" if tool_call_id else ""
        super().__init__(f"No pending block for tool '{tool}'{id_info}")


class RunAbortedError(ToolchatError):
    """Raised when a run stops before reaching a terminal state."""


class RunTimeoutError(RunAbortedError):
    """Raised when a run exceeds its time budget."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Run timed out after {timeout_seconds}s")


class ReasoningLimitExceededError(RunAbortedError):
    """Raised when the agent keeps requesting tools past the step limit."""

    def __init__(self, max_reasoning_steps: int):
        self.max_reasoning_steps = max_reasoning_steps
        super().__init__(
            f"Maximum reasoning steps ({max_reasoning_steps}) exceeded without a final answer"
        )
