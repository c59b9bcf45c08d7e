"""Tests for conversation history, tool schemas and the mutation counter."""

import threading

import pytest

from graphitegit.conversation import (
    Conversation,
    FunctionResultTurn,
    ModelTurn,
    ToolInvocation,
    ToolStatus,
    UserTurn,
)
from graphitegit.events import MutationCounter
from graphitegit.tools.schemas import ARGS_MODELS, TOOL_DEFINITIONS


def test_append_and_snapshot():
    """Test that turns are kept in order and snapshots are copies."""
    conversation = Conversation()
    conversation.append(UserTurn("hi"))
    snapshot = conversation.turns
    conversation.append(ModelTurn(text="hello"))

    assert len(snapshot) == 1
    assert len(conversation) == 2
    assert [t.role for t in conversation] == ["user", "model"]


def test_result_must_answer_a_call():
    """Test that a function result needs a matching prior call."""
    conversation = Conversation()
    call = ToolInvocation(name="read_file", args={"path": "a"})
    conversation.append(ModelTurn(proposed_calls=[call]))

    with pytest.raises(ValueError):
        conversation.append(FunctionResultTurn(tool_name="read_file", result="x", call_id="nope"))
    with pytest.raises(ValueError):
        conversation.append(FunctionResultTurn(tool_name="delete_file", result="x", call_id=call.id))

    conversation.append(FunctionResultTurn(tool_name="read_file", result="x", call_id=call.id))
    assert len(conversation) == 2


def test_unresolved_invocations():
    """Test tracking calls that were neither rejected nor attempted."""
    conversation = Conversation()
    done = ToolInvocation(name="read_file", status=ToolStatus.EXECUTED, result="ok")
    open_call = ToolInvocation(name="list_files")
    conversation.append(ModelTurn(proposed_calls=[done, open_call]))

    assert conversation.unresolved_invocations() == [open_call]
    assert done.has_result
    assert not open_call.has_result


def test_turn_to_dict():
    """Test transcript serialization of a model turn."""
    call = ToolInvocation(name="list_files", args={"path": ""})
    data = ModelTurn(text="Listing", proposed_calls=[call]).to_dict()

    assert data["role"] == "model"
    assert data["tool_calls"][0]["status"] == "pending"


def test_tool_wire_contract():
    """Test declared tool names and required arguments."""
    required = {
        tool["function"]["name"]: tool["function"]["parameters"].get("required", [])
        for tool in TOOL_DEFINITIONS
    }

    assert set(required) == set(ARGS_MODELS)
    assert required == {
        "list_files": [],
        "read_file": ["path"],
        "create_or_update_file": ["path", "content", "message"],
        "replace_in_file": ["path", "search", "replace", "message"],
        "delete_file": ["path", "message"],
    }


def test_mutation_counter_is_monotonic_across_threads():
    """Test concurrent bumps never lose an increment."""
    counter = MutationCounter()
    seen = []
    counter.subscribe(seen.append)

    threads = [threading.Thread(target=lambda: [counter.bump() for _ in range(50)]) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter.value == 200
    assert sorted(seen) == list(range(1, 201))


def test_mutation_counter_unsubscribe():
    """Test removing a listener."""
    counter = MutationCounter()
    seen = []
    unsubscribe = counter.subscribe(seen.append)
    counter.bump()
    unsubscribe()
    counter.bump()

    assert seen == [1]
    assert counter.value == 2
