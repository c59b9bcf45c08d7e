"""Reasoning engine adapter for Anthropic Claude models."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, Sequence

import anthropic
from anthropic import Anthropic

from graphitegit.constants import MISSING_ENGINE_KEY_MESSAGE, SUPPORTED_MODELS
from graphitegit.context import DisclosedContext
from graphitegit.conversation import FunctionResultTurn, ModelTurn, Turn, UserTurn, new_id
from graphitegit.errors import ConfigurationError, EngineError
from graphitegit.system_prompt import SystemPromptBuilder
from graphitegit.tools.schemas import TOOL_DEFINITIONS


@dataclass
class ModelDescriptor:
    """Descriptor for an LLM model."""

    provider: Literal["anthropic"]
    name: str
    max_output_tokens: int
    temperature: float = 0.7


@dataclass
class ProposedCall:
    """A tool call as proposed by the engine, before it enters the conversation."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)


@dataclass
class EngineResponse:
    text: str = ""
    proposed_calls: list[ProposedCall] = field(default_factory=list)


class ReasoningEngine(Protocol):
    """What the agent needs from a reasoning engine. Holds no conversation memory."""

    def converse(
        self,
        history: Sequence[Turn],
        context: DisclosedContext,
        model: str,
        api_key: Optional[str],
    ) -> EngineResponse: ...


class LLM:
    """Anthropic Claude engine.

    Stateless apart from a client per credential: the model and the key are
    supplied on every call, so either can change between turns.
    """

    def __init__(self, prompt_builder: Optional[SystemPromptBuilder] = None):
        self.prompt_builder = prompt_builder or SystemPromptBuilder()
        self._clients: dict[str, Anthropic] = {}

    def converse(
        self,
        history: Sequence[Turn],
        context: DisclosedContext,
        model: str,
        api_key: Optional[str],
    ) -> EngineResponse:
        """Send the conversation and return the engine's next move.

        Args:
            history: Full conversation history
            context: Disclosed context for the system instruction
            model: Model string (e.g., "anthropic:claude-sonnet-4-5")
            api_key: Anthropic API key

        Returns:
            EngineResponse with text and zero or more proposed calls

        Raises:
            ConfigurationError: If the key is missing or the model unknown
            EngineError: On any transport or remote-side failure
        """
        if not api_key:
            raise ConfigurationError(MISSING_ENGINE_KEY_MESSAGE)
        try:
            descriptor = self.parse_model_string(model)
        except ValueError as e:
            raise ConfigurationError(str(e))

        messages = self.to_messages(history)
        if not messages:
            raise EngineError("Nothing to send: the conversation has no user input yet")

        kwargs: dict[str, Any] = {
            "model": descriptor.name,
            "messages": messages,
            "system": self.prompt_builder.build_system_blocks(context),
            "tools": self._convert_tools_to_anthropic(TOOL_DEFINITIONS),
            "temperature": descriptor.temperature,
            "max_tokens": descriptor.max_output_tokens,
        }

        try:
            response = self._client_for(api_key).messages.create(**kwargs)
        except anthropic.APIError as e:
            raise EngineError(self._describe_api_error(e))

        return self._parse_response(response)

    def _client_for(self, api_key: str) -> Anthropic:
        client = self._clients.get(api_key)
        if client is None:
            client = Anthropic(api_key=api_key)
            self._clients[api_key] = client
        return client

    @staticmethod
    def _describe_api_error(error: anthropic.APIError) -> str:
        status = getattr(error, "status_code", None)
        if status:
            return f"Reasoning engine request failed ({status}): {error.message}"
        return f"Reasoning engine request failed: {error.message}"

    @staticmethod
    def _parse_response(response: Any) -> EngineResponse:
        blocks = getattr(response, "content", None)
        if blocks is None:
            raise EngineError("Malformed response from reasoning engine: no content")

        result = EngineResponse()
        for block in blocks:
            if block.type == "text":
                result.text += block.text
            elif block.type == "tool_use":
                args = block.input if isinstance(block.input, dict) else {}
                result.proposed_calls.append(
                    ProposedCall(name=block.name, args=dict(args), id=block.id)
                )
        return result

    @staticmethod
    def to_messages(history: Sequence[Turn]) -> list[dict[str, Any]]:
        """Serialize history into Anthropic messages.

        System turns are display-only and are skipped. Only calls that
        actually produced a result are sent as tool_use blocks, since every
        tool_use must be answered by a tool_result. Consecutive messages with
        the same role are merged.

        Args:
            history: Conversation turns

        Returns:
            List of message dicts with 'role' and 'content'
        """
        messages: list[dict[str, Any]] = []

        def push(role: str, content: list[dict]) -> None:
            if not content:
                return
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"].extend(content)
            else:
                messages.append({"role": role, "content": list(content)})

        for turn in history:
            if isinstance(turn, UserTurn):
                if turn.text:
                    push("user", [{"type": "text", "text": turn.text}])
            elif isinstance(turn, ModelTurn):
                content: list[dict] = []
                if turn.text:
                    content.append({"type": "text", "text": turn.text})
                for call in turn.proposed_calls:
                    if call.has_result:
                        content.append({
                            "type": "tool_use",
                            "id": call.id,
                            "name": call.name,
                            "input": call.args,
                        })
                push("assistant", content)
            elif isinstance(turn, FunctionResultTurn):
                push("user", [{
                    "type": "tool_result",
                    "tool_use_id": turn.call_id,
                    "content": turn.result,
                    "is_error": turn.is_error,
                }])

        # The API requires the first message to come from the user
        while messages and messages[0]["role"] != "user":
            messages.pop(0)

        return messages

    def _convert_tools_to_anthropic(self, openai_tools: list[dict]) -> list[dict]:
        """Convert OpenAI tool format to Anthropic format.

        Args:
            openai_tools: List of OpenAI tool definitions

        Returns:
            List of Anthropic tool definitions
        """
        anthropic_tools = []
        for tool in openai_tools:
            if tool["type"] == "function":
                func = tool["function"]
                anthropic_tools.append({
                    "name": func["name"],
                    "description": func.get("description", ""),
                    "input_schema": func.get("parameters", {}),
                })
        return anthropic_tools

    @classmethod
    def parse_model_string(cls, model_str: str) -> ModelDescriptor:
        """Parse model string into ModelDescriptor.

        Args:
            model_str: Model string (e.g., "anthropic:claude-sonnet-4-5")

        Returns:
            ModelDescriptor

        Raises:
            ValueError: If model string is invalid
        """
        if model_str not in SUPPORTED_MODELS:
            raise ValueError(
                f"Unsupported model: {model_str}. "
                f"Supported: {', '.join(SUPPORTED_MODELS.keys())}"
            )

        model_config = SUPPORTED_MODELS[model_str]
        return ModelDescriptor(
            provider=model_config["provider"],
            name=model_config["name"],
            max_output_tokens=model_config["max_output_tokens"],
        )

    @classmethod
    def list_models(cls) -> list[str]:
        """List all supported model strings.

        Returns:
            List of model strings
        """
        return list(SUPPORTED_MODELS.keys())
