"""Conversation history: turns, tool invocations and the append-only log."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class ToolStatus(str, Enum):
    """Lifecycle of a proposed tool invocation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({ToolStatus.REJECTED, ToolStatus.EXECUTED, ToolStatus.FAILED})


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ToolInvocation:
    """A named tool call proposed by the reasoning engine."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    status: ToolStatus = ToolStatus.PENDING
    result: Optional[str] = None

    @property
    def has_result(self) -> bool:
        """True once the call was attempted and a result was threaded back."""
        return self.status in (ToolStatus.EXECUTED, ToolStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "args": self.args,
            "status": self.status.value,
            "result": self.result,
        }


@dataclass
class UserTurn:
    role: ClassVar[str] = "user"

    text: str
    id: str = field(default_factory=new_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"role": self.role, "text": self.text}


@dataclass
class ModelTurn:
    role: ClassVar[str] = "model"

    text: str = ""
    proposed_calls: list[ToolInvocation] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "text": self.text,
            "tool_calls": [call.to_dict() for call in self.proposed_calls],
        }


@dataclass
class SystemTurn:
    """Diagnostic, error or cancellation notice. Display only."""

    role: ClassVar[str] = "system"

    text: str
    id: str = field(default_factory=new_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"role": self.role, "text": self.text}


@dataclass
class FunctionResultTurn:
    """Outcome of exactly one executed ToolInvocation."""

    role: ClassVar[str] = "function"

    tool_name: str
    result: str
    call_id: str
    is_error: bool = False
    id: str = field(default_factory=new_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "tool_name": self.tool_name,
            "call_id": self.call_id,
            "result": self.result,
            "is_error": self.is_error,
        }


Turn = Union[UserTurn, ModelTurn, SystemTurn, FunctionResultTurn]


class Conversation:
    """Append-only, ordered sequence of turns owned by the agent."""

    def __init__(self):
        self._turns: list[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(self._turns)

    @property
    def turns(self) -> list[Turn]:
        """Snapshot copy of the history."""
        return list(self._turns)

    def append(self, turn: Turn) -> Turn:
        """Append a turn.

        Args:
            turn: Turn to append

        Returns:
            The appended turn

        Raises:
            ValueError: If a function result does not answer a prior model call
        """
        if isinstance(turn, FunctionResultTurn):
            invocation = self.find_invocation(turn.call_id)
            if invocation is None:
                raise ValueError(f"No tool call with id {turn.call_id} to attach a result to")
            if invocation.name != turn.tool_name:
                raise ValueError(
                    f"Result for {turn.tool_name} does not match call {invocation.name}"
                )
        self._turns.append(turn)
        return turn

    def find_invocation(self, call_id: str) -> Optional[ToolInvocation]:
        for turn in reversed(self._turns):
            if isinstance(turn, ModelTurn):
                for call in turn.proposed_calls:
                    if call.id == call_id:
                        return call
        return None

    def unresolved_invocations(self) -> list[ToolInvocation]:
        """Invocations that are neither rejected nor attempted."""
        return [
            call
            for turn in self._turns
            if isinstance(turn, ModelTurn)
            for call in turn.proposed_calls
            if call.status not in TERMINAL_STATUSES
        ]

    def clear(self) -> None:
        self._turns = []
