"""Run state shared by every LangGraph agent in the service."""

from typing import Annotated, TypedDict

from langchain_core.messages import AnyMessage
from langgraph.graph.message import add_messages


def add_tokens(existing: dict[str, int] | None, new: dict[str, int] | None) -> dict[str, int]:
    """Reducer summing per-model token counts across node updates."""
    merged = dict(existing or {})
    for model, count in (new or {}).items():
        merged[model] = merged.get(model, 0) + count
    return merged


class BaseAgentState(TypedDict):
    """Run state threaded through the orchestration loop and checkpointed per thread.

    ``messages`` uses the ``add_messages`` reducer, so nodes return only the
    messages they append. Token counters are keyed by model name.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    thread_id: str
    agent_slug: str
    input_tokens_by_model: Annotated[dict[str, int], add_tokens]
    output_tokens_by_model: Annotated[dict[str, int], add_tokens]
