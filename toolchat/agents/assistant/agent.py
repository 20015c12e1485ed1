"""Assistant agent builder module.

This module provides the builder class for constructing the LangGraph-based
assistant with MCP tool integration and checkpointed conversation state.
"""

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Self

from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.tools import BaseTool
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, START, StateGraph

from toolchat.agents.assistant.nodes import ReasonerNode, ToolInvokerNode
from toolchat.agents.assistant.prompt import build_system_prompt
from toolchat.agents.assistant.state import AgentState
from toolchat.platform.agent.config import (
    AgentConfig,
    AgentIdentity,
    LlmConfig,
    MCPConfig,
)
from toolchat.platform.agent.history import HistoryPreparer
from toolchat.platform.agent.langgraph import (
    LangGraphAgent,
    LangGraphMCPTools,
    ToolFetcher,
)
from toolchat.platform.agent.llm_client import LlmClient
from toolchat.platform.agent.routing import RunStep, route_after_agent


class AssistantAgentBuilder:
    """Builder for the tool-using chat assistant.

    This builder assembles all components needed for the assistant:
    - LLM client with tool bindings
    - MCP clients for tool discovery and execution (supports multiple servers)
    - History preparer bounding each model prompt
    - Agent and tool invoker nodes wired into the orchestration loop
    - Checkpointer for per-thread run state
    """

    SLUG = "assistant"

    def __init__(
        self,
        agent_config: AgentConfig,
        llm_config: LlmConfig,
        mcp_configs: list[MCPConfig],
        checkpointer: BaseCheckpointSaver | None,
        identity: AgentIdentity,
        tool_fetcher: ToolFetcher | None = None,
        llm_client: LlmClient | None = None,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize the builder with configuration.

        Args:
            agent_config: Configuration for agent behavior (steps, history window, etc.)
            llm_config: Configuration for the LLM client
            mcp_configs: List of MCP server configurations for tool discovery
            checkpointer: LangGraph checkpointer for run state, None for stateless runs
            identity: Agent identity (name, description, slug)
            tool_fetcher: Optional callable for fetching tools from MCP configs.
                Defaults to LangGraphMCPTools.fetch_all. Inject for testing.
            llm_client: Optional pre-built LLM client. Inject for testing.
            system_prompt: Optional system prompt override
        """
        self.agent_config = agent_config
        self.llm_config = llm_config
        self.mcp_configs = mcp_configs
        self.checkpointer = checkpointer
        self.identity = identity
        self._fetch_tools = tool_fetcher or LangGraphMCPTools.fetch_all
        self._llm_client = llm_client
        self.system_prompt = system_prompt or build_system_prompt()

    def _create_llm_client(self) -> LlmClient:
        if self._llm_client is not None:
            return self._llm_client
        return LlmClient(self.identity.slug, self.llm_config)

    async def build(self) -> LangGraphAgent:
        """Build and return a configured LangGraphAgent.

        Returns:
            A fully configured LangGraphAgent ready for execution.
        """
        tools: list[BaseTool] = []
        if self.mcp_configs:
            tools = await self._fetch_tools(self.mcp_configs)

        llm_client = self._create_llm_client()
        llm_with_tools = llm_client.bind_tools(tools) if tools else llm_client

        history_preparer = HistoryPreparer(
            system_prompt=self.system_prompt,
            max_messages=self.agent_config.max_messages,
            max_tokens=self.agent_config.max_tokens,
            prompt_caching=self.agent_config.prompt_caching,
        )
        reasoner_node = ReasonerNode(llm_with_tools, self.agent_config, history_preparer)
        tool_node = ToolInvokerNode(tools, self.agent_config, self.identity.slug)

        workflow = StateGraph(AgentState)  # type: ignore[bad-specialization]

        workflow.add_node(RunStep.AGENT.value, reasoner_node)  # type: ignore
        workflow.add_node(RunStep.TOOLS.value, tool_node)  # type: ignore

        workflow.add_edge(START, RunStep.AGENT.value)
        workflow.add_conditional_edges(
            RunStep.AGENT.value,
            route_after_agent,
            {
                RunStep.TOOLS.value: RunStep.TOOLS.value,
                RunStep.AGENT.value: RunStep.AGENT.value,
                END: END,
            },
        )
        workflow.add_edge(RunStep.TOOLS.value, RunStep.AGENT.value)

        compiled = workflow.compile(checkpointer=self.checkpointer)
        return LangGraphAgent(
            graph=compiled.with_config({"recursion_limit": self.agent_config.recursion_limit}),
            identity=self.identity,
            initial_state_builder=self.build_initial_state,
            tools=tools,
            run_timeout_seconds=self.agent_config.run_timeout_seconds,
        )

    @classmethod
    def default_builder(
        cls,
        llm_config: LlmConfig,
        checkpointer: BaseCheckpointSaver | None,
        mcp_configs: list[MCPConfig],
        agent_config: AgentConfig | None = None,
        identity: AgentIdentity | None = None,
    ) -> Self:
        """Create a builder with default configuration for the assistant.

        Args:
            llm_config: Model routing and sampling configuration
            checkpointer: LangGraph checkpointer for run state
            mcp_configs: List of MCP server configurations for tool discovery
            agent_config: Optional loop configuration. Defaults to 15 reasoning steps
                and a 10 message history window.
            identity: Optional agent identity. Defaults to the assistant.

        Returns:
            A configured AssistantAgentBuilder instance.
        """
        default_identity = AgentIdentity(
            name="Assistant",
            description="A chat assistant that calls tools to answer questions",
            slug=cls.SLUG,
        )
        return cls(
            agent_config=agent_config
            or AgentConfig(
                max_reasoning_steps=15,
                # Graph supersteps; each reasoning step costs up to two
                recursion_limit=50,
                max_messages=10,
            ),
            llm_config=llm_config,
            mcp_configs=mcp_configs,
            checkpointer=checkpointer,
            identity=identity or default_identity,
        )

    @classmethod
    def build_initial_state(
        cls,
        message: str,
        thread_id: str | None = None,
        history: Sequence[BaseMessage] = (),
        utc_now: datetime | None = None,
    ) -> AgentState:
        """Get the initial state for a run.

        Args:
            message: User's input message
            thread_id: Thread ID for conversation persistence, if None, a new thread will be created
            history: Earlier conversation messages seeding a thread with no checkpoint
            utc_now: Optional UTC now time, if None, the current time will be used

        Returns:
            Initial agent state; messages are appended to any checkpointed thread
        """
        thread_id = thread_id or str(uuid.uuid4())
        utc_now = utc_now or datetime.now(UTC)
        user_msg = HumanMessage(content=f"UTC Now: {utc_now.isoformat()}\n\nUser Inquiry: {message}")

        return AgentState(
            messages=[*history, user_msg],
            reasoning_steps=0,
            thread_id=thread_id,
            agent_slug=cls.SLUG,
            input_tokens_by_model={},
            output_tokens_by_model={},
        )
