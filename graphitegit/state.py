"""State models for the agent and its LangGraph round."""

from enum import Enum
from typing import Optional, TypedDict

from graphitegit.conversation import ToolInvocation


class AgentState(str, Enum):
    """Conversation-level state of the agent."""

    IDLE = "idle"
    AWAITING_ENGINE = "awaiting_engine"
    AWAITING_APPROVAL = "awaiting_approval"
    EXECUTING_TOOL = "executing_tool"
    AWAITING_FOLLOWUP = "awaiting_followup"


THINKING_STATES = frozenset({
    AgentState.AWAITING_ENGINE,
    AgentState.EXECUTING_TOOL,
    AgentState.AWAITING_FOLLOWUP,
})


class RoundState(TypedDict):
    """The state object passed through one LangGraph round.

    Attributes:
        invocation: Approved invocation to execute before consulting the engine
        proposed: Invocation surfaced for approval by this round, if any
    """

    invocation: Optional[ToolInvocation]
    proposed: Optional[ToolInvocation]
