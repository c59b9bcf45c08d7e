"""Agent orchestration: conversation rounds, approval gate and tool execution."""

import threading
from typing import Any, Callable, Optional

from langgraph.graph import END, START, StateGraph

from graphitegit.constants import (
    CANCELLED_MESSAGE,
    DEFAULT_MODEL,
    DEFERRED_CALL_MESSAGE,
    MISSING_ENGINE_KEY_MESSAGE,
    SUPPORTED_MODELS,
)
from graphitegit.context import ContextDisclosurePolicy, ContextState, project
from graphitegit.conversation import (
    Conversation,
    FunctionResultTurn,
    ModelTurn,
    SystemTurn,
    ToolInvocation,
    ToolStatus,
    Turn,
    UserTurn,
)
from graphitegit.errors import ConfigurationError, EngineError
from graphitegit.llm import ReasoningEngine
from graphitegit.state import THINKING_STATES, AgentState, RoundState
from graphitegit.tools.executor import ToolExecutor
from graphitegit.utils.logging import SessionLogger

Listener = Callable[[str, Any], None]


class Agent:
    """Drives the request / approval / execution / follow-up loop.

    At most one engine round trip or tool execution is in flight at a time:
    ``send_message`` only starts from ``IDLE``, and the approval gate holds
    the conversation until ``approve_tool_call`` or ``reject_tool_call``.
    """

    def __init__(
        self,
        engine: ReasoningEngine,
        executor: ToolExecutor,
        context: Optional[ContextState] = None,
        policy: Optional[ContextDisclosurePolicy] = None,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        logger: Optional[SessionLogger] = None,
    ):
        """Initialize the agent.

        Args:
            engine: Reasoning engine adapter
            executor: Tool executor (owns the remote repository adapter)
            context: Initial workspace context
            policy: Initial disclosure policy
            model: Model string used for engine calls
            api_key: Engine credential
            logger: Optional session logger
        """
        self.engine = engine
        self.executor = executor
        self.context = context or ContextState()
        self.policy = policy or ContextDisclosurePolicy()
        self.model = model
        self.api_key = api_key
        self.logger = logger

        self.conversation = Conversation()
        self._state = AgentState.IDLE
        self._pending: Optional[ToolInvocation] = None
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._deferred: list[tuple[str, Any]] = []

        self.executor.mutations.subscribe(
            lambda value: self._notify("last_action_timestamp", value)
        )
        self.graph = self.build_graph()

    def build_graph(self):
        """Build the LangGraph workflow for one round.

        A round either consults the engine directly (new user message) or
        executes an approved call first and then consults the engine for a
        follow-up. It always ends after one engine response.

        Returns:
            Compiled StateGraph
        """
        workflow = StateGraph(RoundState)

        workflow.add_node("execute_tool", self.execute_tool_node)
        workflow.add_node("consult_engine", self.consult_engine_node)

        workflow.add_conditional_edges(
            START,
            self._route_entry,
            {"execute_tool": "execute_tool", "consult_engine": "consult_engine"},
        )
        workflow.add_edge("execute_tool", "consult_engine")
        workflow.add_edge("consult_engine", END)

        return workflow.compile()

    # --- Presentation-facing state ---

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def messages(self) -> list[Turn]:
        return self.conversation.turns

    @property
    def pending_tool_call(self) -> Optional[ToolInvocation]:
        return self._pending

    @property
    def is_thinking(self) -> bool:
        return self._state in THINKING_STATES

    @property
    def last_action_timestamp(self) -> int:
        return self.executor.mutations.value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(name, value)`` for state changes.

        Names: "messages", "pending_tool_call", "is_thinking",
        "last_action_timestamp".

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Commands ---

    def send_message(self, text: str) -> bool:
        """Start a round with a new user message.

        Args:
            text: User's message

        Returns:
            True if the message was accepted; False if ignored because a
            round or an approval is already in progress
        """
        if not text or not text.strip():
            return False

        with self._lock:
            if self._state is not AgentState.IDLE:
                return False
            if not self.api_key:
                missing_key = True
            else:
                missing_key = False
                self._state = AgentState.AWAITING_ENGINE

        if missing_key:
            self._append(SystemTurn(f"Error: {MISSING_ENGINE_KEY_MESSAGE}"))
            return False

        self._notify("is_thinking", True)
        self._append(UserTurn(text))
        self._run_round(None)
        return True

    def approve_tool_call(self) -> bool:
        """Execute the pending tool call and get the engine's follow-up.

        Returns:
            True if a pending call was approved
        """
        with self._lock:
            invocation = self._pending
            if self._state is not AgentState.AWAITING_APPROVAL or invocation is None:
                return False
            self._pending = None
            invocation.status = ToolStatus.APPROVED
            self._state = AgentState.EXECUTING_TOOL

        self._notify("pending_tool_call", None)
        self._notify("is_thinking", True)
        self._run_round(invocation)
        return True

    def reject_tool_call(self) -> bool:
        """Cancel the pending tool call. Never touches the remote repository.

        Returns:
            True if a pending call was rejected
        """
        with self._lock:
            invocation = self._pending
            if self._state is not AgentState.AWAITING_APPROVAL or invocation is None:
                return False
            self._pending = None
            invocation.status = ToolStatus.REJECTED
            invocation.result = CANCELLED_MESSAGE
            self._state = AgentState.IDLE

        self._log_tool(invocation)
        self._record(SystemTurn(CANCELLED_MESSAGE))
        self._notify("pending_tool_call", None)
        self._notify("messages", self.messages)
        return True

    def reset(self) -> bool:
        """Clear the conversation. Only allowed while idle."""
        with self._lock:
            if self._state is not AgentState.IDLE:
                return False
            self.conversation.clear()

        self._notify("messages", self.messages)
        return True

    # --- Configuration ---

    def update_context(self, **changes: Any) -> ContextState:
        """Merge navigation changes into the context."""
        self.context = self.context.merged(**changes)
        return self.context

    def update_policy(self, **changes: bool) -> ContextDisclosurePolicy:
        """Merge disclosure switches into the policy."""
        self.policy = self.policy.merged(**changes)
        return self.policy

    def set_model(self, model: str) -> None:
        """Switch model for the next engine call; history is kept.

        Raises:
            ValueError: If the model is not supported
        """
        if model not in SUPPORTED_MODELS:
            raise ValueError(
                f"Unsupported model: {model}. "
                f"Supported: {', '.join(SUPPORTED_MODELS.keys())}"
            )
        self.model = model

    def set_api_key(self, api_key: Optional[str]) -> None:
        self.api_key = api_key or None

    def set_engine(self, engine: ReasoningEngine) -> None:
        self.engine = engine

    # --- Graph nodes ---

    def _route_entry(self, state: RoundState) -> str:
        return "execute_tool" if state.get("invocation") is not None else "consult_engine"

    def execute_tool_node(self, state: RoundState) -> dict:
        """Run the approved invocation and thread its result into history."""
        invocation = state["invocation"]

        outcome = self.executor.execute(invocation, self.context)
        invocation.status = ToolStatus.EXECUTED if outcome.success else ToolStatus.FAILED
        invocation.result = outcome.result
        self._log_tool(invocation)

        self._append(FunctionResultTurn(
            tool_name=invocation.name,
            result=outcome.result,
            call_id=invocation.id,
            is_error=not outcome.success,
        ))
        self._set_state(AgentState.AWAITING_FOLLOWUP)
        return {"invocation": None}

    def consult_engine_node(self, state: RoundState) -> dict:
        """Ask the engine for its next move and decide where the round ends."""
        disclosed = project(self.context, self.policy)

        try:
            response = self.engine.converse(
                self.conversation.turns, disclosed, self.model, self.api_key
            )
        except (ConfigurationError, EngineError) as e:
            self._end_round(SystemTurn(f"Error: {e}"), None)
            return {"proposed": None}

        invocations = [
            ToolInvocation(name=call.name, args=dict(call.args), id=call.id)
            for call in response.proposed_calls
        ]
        # Only the first call is actionable; the rest are closed out.
        for extra in invocations[1:]:
            extra.status = ToolStatus.REJECTED
            extra.result = DEFERRED_CALL_MESSAGE

        proposed = invocations[0] if invocations else None
        self._end_round(ModelTurn(text=response.text or "", proposed_calls=invocations), proposed)
        return {"proposed": proposed}

    def _end_round(self, turn: Turn, proposed: Optional[ToolInvocation]) -> None:
        """Record the round's last turn and settle the state.

        Notifications are queued and sent by ``_run_round`` once the graph has
        returned, so listeners see state, pending call and history agree and
        may approve, reject or send straight from their callback.
        """
        self._record(turn)
        new_state = AgentState.AWAITING_APPROVAL if proposed else AgentState.IDLE
        with self._lock:
            was_thinking = self._state in THINKING_STATES
            self._pending = proposed
            self._state = new_state

        self._deferred.append(("messages", self.messages))
        if was_thinking:
            self._deferred.append(("is_thinking", False))
        if proposed is not None:
            self._deferred.append(("pending_tool_call", proposed))

    # --- Internals ---

    def _run_round(self, invocation: Optional[ToolInvocation]) -> None:
        try:
            self.graph.invoke({"invocation": invocation, "proposed": None})
        except Exception as e:
            # Close out calls the failed round left open so none can be approved later
            for stale in self.conversation.unresolved_invocations():
                stale.status = ToolStatus.REJECTED
                stale.result = f"Error: {e}"
            self._end_round(SystemTurn(f"Error: {e}"), None)
            self._flush()
            raise
        self._flush()

    def _flush(self) -> None:
        deferred, self._deferred = self._deferred, []
        for name, value in deferred:
            self._notify(name, value)

    def _set_state(self, new_state: AgentState) -> None:
        with self._lock:
            was_thinking = self._state in THINKING_STATES
            self._state = new_state
        if was_thinking != (new_state in THINKING_STATES):
            self._notify("is_thinking", new_state in THINKING_STATES)

    def _append(self, turn: Turn) -> None:
        self._record(turn)
        self._notify("messages", self.messages)

    def _record(self, turn: Turn) -> None:
        self.conversation.append(turn)
        if self.logger:
            try:
                self.logger.log_turn(turn)
            except OSError:
                pass  # Ignore log write errors

    def _log_tool(self, invocation: ToolInvocation) -> None:
        if self.logger:
            try:
                self.logger.save_tool_result(invocation)
            except OSError:
                pass  # Ignore log write errors

    def _notify(self, name: str, value: Any) -> None:
        for listener in list(self._listeners):
            listener(name, value)
