"""Tests for the Anthropic engine adapter (the client is mocked)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from graphitegit.constants import MISSING_ENGINE_KEY_MESSAGE
from graphitegit.conversation import (
    FunctionResultTurn,
    ModelTurn,
    SystemTurn,
    ToolInvocation,
    ToolStatus,
    UserTurn,
)
from graphitegit.errors import ConfigurationError, EngineError
from graphitegit.llm import LLM

MODEL = "anthropic:claude-sonnet-4-5"


def _executed_call(name="read_file", args=None, result="ok", status=ToolStatus.EXECUTED):
    return ToolInvocation(name=name, args=args or {"path": "a.py"}, status=status, result=result)


def test_parse_model_string():
    """Test parsing a supported model string."""
    descriptor = LLM.parse_model_string(MODEL)

    assert descriptor.provider == "anthropic"
    assert descriptor.name.startswith("claude-sonnet-4-5")
    assert descriptor.max_output_tokens > 0


def test_parse_model_string_invalid():
    """Test rejecting unknown models."""
    with pytest.raises(ValueError, match="Unsupported model"):
        LLM.parse_model_string("openai:gpt-4o")


def test_list_models():
    """Test listing models."""
    assert MODEL in LLM.list_models()


def test_to_messages_roles_and_tool_pairing():
    """Test serializing a full tool round."""
    call = _executed_call(result="x = 1\n")
    history = [
        UserTurn("Read a.py"),
        ModelTurn(text="Reading it.", proposed_calls=[call]),
        FunctionResultTurn(tool_name="read_file", result="x = 1\n", call_id=call.id),
        ModelTurn(text="It sets x."),
    ]

    messages = LLM.to_messages(history)

    assert [m["role"] for m in messages] == ["user", "assistant", "user", "assistant"]
    assert messages[1]["content"] == [
        {"type": "text", "text": "Reading it."},
        {"type": "tool_use", "id": call.id, "name": "read_file", "input": {"path": "a.py"}},
    ]
    assert messages[2]["content"] == [{
        "type": "tool_result",
        "tool_use_id": call.id,
        "content": "x = 1\n",
        "is_error": False,
    }]


def test_to_messages_skips_unanswered_calls():
    """Test that rejected or pending calls are not sent as tool_use."""
    rejected = _executed_call(status=ToolStatus.REJECTED, result="cancelled")
    history = [
        UserTurn("Delete it"),
        ModelTurn(text="Deleting.", proposed_calls=[rejected]),
        SystemTurn("Tool execution cancelled by user."),
        UserTurn("Never mind"),
    ]

    messages = LLM.to_messages(history)

    assert messages == [
        {"role": "user", "content": [{"type": "text", "text": "Delete it"}]},
        {"role": "assistant", "content": [{"type": "text", "text": "Deleting."}]},
        {"role": "user", "content": [{"type": "text", "text": "Never mind"}]},
    ]


def test_to_messages_merges_same_role():
    """Test that consecutive user content is merged into one message."""
    call = _executed_call()
    history = [
        UserTurn("Read a.py"),
        ModelTurn(proposed_calls=[call]),
        FunctionResultTurn(tool_name="read_file", result="ok", call_id=call.id),
        UserTurn("Thanks"),
    ]

    messages = LLM.to_messages(history)

    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert [block["type"] for block in messages[2]["content"]] == ["tool_result", "text"]


def test_to_messages_drops_leading_assistant():
    """Test that the first message always comes from the user."""
    messages = LLM.to_messages([ModelTurn(text="Hello"), UserTurn("Hi")])

    assert messages[0]["role"] == "user"
    assert len(messages) == 1


def test_converse_requires_key():
    """Test that a missing key is a configuration error."""
    with pytest.raises(ConfigurationError, match="API key"):
        LLM().converse([UserTurn("hi")], {}, MODEL, None)

    assert "ANTHROPIC_API_KEY" in MISSING_ENGINE_KEY_MESSAGE


def test_converse_unknown_model():
    """Test that an unknown model is a configuration error."""
    with pytest.raises(ConfigurationError):
        LLM().converse([UserTurn("hi")], {}, "anthropic:unknown", "key")


def test_converse_parses_text_and_tool_calls():
    """Test a successful engine call."""
    response = SimpleNamespace(content=[
        SimpleNamespace(type="text", text="Let me look."),
        SimpleNamespace(type="tool_use", id="tu_1", name="list_files", input={"path": "src"}),
    ])
    client = MagicMock()
    client.messages.create.return_value = response

    with patch("graphitegit.llm.Anthropic", return_value=client) as factory:
        result = LLM().converse(
            [UserTurn("What is in src?")], {"active_view": "repository"}, MODEL, "key"
        )

    factory.assert_called_once_with(api_key="key")
    assert result.text == "Let me look."
    assert len(result.proposed_calls) == 1
    assert result.proposed_calls[0].id == "tu_1"
    assert result.proposed_calls[0].args == {"path": "src"}

    kwargs = client.messages.create.call_args[1]
    assert kwargs["model"] == LLM.parse_model_string(MODEL).name
    assert {tool["name"] for tool in kwargs["tools"]} == {
        "list_files", "read_file", "create_or_update_file", "replace_in_file", "delete_file",
    }
    assert kwargs["system"][0]["cache_control"] == {"type": "ephemeral"}
    assert '"active_view": "repository"' in kwargs["system"][1]["text"]


def test_converse_reuses_client_per_key():
    """Test that the client is cached per credential."""
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=[])

    with patch("graphitegit.llm.Anthropic", return_value=client) as factory:
        engine = LLM()
        engine.converse([UserTurn("a")], {}, MODEL, "key")
        engine.converse([UserTurn("b")], {}, MODEL, "key")
        engine.converse([UserTurn("c")], {}, MODEL, "other")

    assert factory.call_count == 2


def test_converse_wraps_api_errors():
    """Test that SDK errors become EngineError."""
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client = MagicMock()
    client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

    with patch("graphitegit.llm.Anthropic", return_value=client):
        with pytest.raises(EngineError, match="Reasoning engine request failed"):
            LLM().converse([UserTurn("hi")], {}, MODEL, "key")


def test_converse_malformed_response():
    """Test that a response without content is an engine error."""
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=None)

    with patch("graphitegit.llm.Anthropic", return_value=client):
        with pytest.raises(EngineError, match="Malformed"):
            LLM().converse([UserTurn("hi")], {}, MODEL, "key")
