"""Model backend client: ChatLiteLLM behind the LiteLLM proxy, with token metrics."""

from collections.abc import AsyncIterator
from typing import NamedTuple, Self

from langchain_core.messages import AIMessage, AIMessageChunk
from langchain_core.runnables import Runnable, RunnableConfig
from langchain_core.tools import BaseTool
from langchain_litellm import ChatLiteLLM

from toolchat.platform.agent.config import LlmConfig
from toolchat.platform.agent.metrics import record_agent_tokens


class TokenCount(NamedTuple):
    input: int = 0
    output: int = 0


class LlmClient(Runnable):
    """Runnable wrapper around a chat model.

    Every call records its token usage against the agent slug and model name.
    Streaming yields ``AIMessageChunk``s carrying text and tool-call fragments.
    """

    def __init__(self, agent_slug: str, config: LlmConfig, llm=None):
        """Initialize the client.

        Args:
            agent_slug: Label for token metrics
            config: Model routing and sampling parameters
            llm: Chat model to use instead of building ChatLiteLLM from ``config``
        """
        self._agent_slug = agent_slug
        self._config = config
        self._llm = llm or ChatLiteLLM(
            model_name=config.model,
            api_key=config.api_key,
            api_base=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            streaming=True,
        )

    @property
    def model_name(self) -> str:
        return self._config.model

    def bind_tools(self, tools: list[BaseTool]) -> Self:
        return type(self)(self._agent_slug, self._config, llm=self._llm.bind_tools(tools))

    @staticmethod
    def extract_tokens(message: AIMessage | AIMessageChunk) -> TokenCount:
        """Token usage reported on a message, zero when the provider sent none."""
        usage = getattr(message, "usage_metadata", None)
        if not usage:
            return TokenCount()
        return TokenCount(usage.get("input_tokens", 0), usage.get("output_tokens", 0))

    def _record(self, tokens: TokenCount) -> None:
        record_agent_tokens(self._agent_slug, self.model_name, tokens.input, tokens.output)

    def invoke(self, input, config: RunnableConfig | None = None, **kwargs):
        response = self._llm.invoke(input, config=config, **kwargs)
        self._record(self.extract_tokens(response))
        return response

    async def ainvoke(self, input, config: RunnableConfig | None = None, **kwargs):
        response = await self._llm.ainvoke(input, config=config, **kwargs)
        self._record(self.extract_tokens(response))
        return response

    async def astream(
        self, input, config: RunnableConfig | None = None, **kwargs
    ) -> AsyncIterator[AIMessageChunk]:
        """Stream the response; usage is summed over chunks and recorded at the end."""
        total = TokenCount()
        async for chunk in self._llm.astream(input, config=config, **kwargs):
            tokens = self.extract_tokens(chunk)
            total = TokenCount(total.input + tokens.input, total.output + tokens.output)
            yield chunk
        self._record(total)
