"""
Dispatch loop.

Turns the decision engine's opaque sequence of steps into side effects:

    engine.converse(text) -> step
    step is action/msg -> registry handler -> new context -> engine.converse(None)
    step is stop       -> done

States:
    RUNNING    executing a handler or interpreting a step
    SUSPENDED  awaiting the engine's next decision
    COMPLETED  engine said stop; context may be persisted
    FAILED     unknown action, engine failure, step cap reached, or the
               last executed action failed

Invariants:
- At most max_steps engine calls per turn (fail closed past the cap)
- Handlers work on a deep copy of the context; a failing handler changes nothing
- A handler failure is isolated: the loop asks the engine for the next step
- The loop never persists; the caller persists COMPLETED results
"""

import asyncio
import copy
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from inference import DecisionEngine, DecisionEngineError

from agent.actions import ActionHandler, ActionInvocation, ActionRegistry
from agent.errors import ActionNotFoundError, DispatchLimitExceeded, HandlerError
from agent.session import Session

logger = logging.getLogger(__name__)

SEND_ACTION = "send"
DEFAULT_MAX_STEPS = 5
DEFAULT_ACTION_TIMEOUT_S = 15.0


class DispatchState(str, Enum):
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Outcome of one turn."""

    session_id: str
    state: DispatchState
    context: Dict[str, Any]
    steps: int = 0
    actions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.state is DispatchState.COMPLETED


class DispatchLoop:
    """
    Runs one conversational turn against the decision engine.

    Args:
        engine: Decision engine selecting the next step
        registry: Actions available to the engine
        max_steps: Engine calls allowed per turn
        action_timeout_s: Budget for a single handler
    """

    def __init__(
        self,
        engine: DecisionEngine,
        registry: ActionRegistry,
        max_steps: int = DEFAULT_MAX_STEPS,
        action_timeout_s: float = DEFAULT_ACTION_TIMEOUT_S,
    ):
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.engine = engine
        self.registry = registry
        self.max_steps = max_steps
        self.action_timeout_s = action_timeout_s
        self._turn_ids = itertools.count(1)
        # session_id -> {turn_id: state}, turns in start order
        self._active: Dict[str, Dict[int, DispatchState]] = {}

    def state_of(self, session_id: str) -> Optional[DispatchState]:
        """State of the latest turn in flight for a session, or None when idle."""
        turns = self._active.get(session_id)
        if not turns:
            return None
        return next(reversed(turns.values()))

    async def run(self, session: Session, text: str) -> DispatchResult:
        """
        Dispatch one user message.

        Never raises for engine or handler failures; they are reported through
        a FAILED result.
        """
        turn_id = next(self._turn_ids)
        turns = self._active.setdefault(session.session_id, {})
        try:
            return await self._run(session, text, turns, turn_id)
        finally:
            turns.pop(turn_id, None)
            if not turns and self._active.get(session.session_id) is turns:
                del self._active[session.session_id]

    async def _run(
        self,
        session: Session,
        text: str,
        turns: Dict[int, DispatchState],
        turn_id: int,
    ) -> DispatchResult:
        context: Dict[str, Any] = copy.deepcopy(session.context)
        executed: List[str] = []
        last_failed = False
        query: Optional[str] = text

        for step_no in range(1, self.max_steps + 1):
            turns[turn_id] = DispatchState.SUSPENDED
            try:
                step = await self.engine.converse(session.session_id, query, copy.deepcopy(context))
            except DecisionEngineError as e:
                logger.error(
                    f"Decision engine failed: {e}",
                    extra={"session_id": session.session_id, "step": step_no},
                )
                return self._finish(session, DispatchState.FAILED, context, step_no, executed, str(e))

            turns[turn_id] = DispatchState.RUNNING
            query = None

            if step.is_stop:
                if last_failed:
                    return self._finish(
                        session, DispatchState.FAILED, context, step_no, executed,
                        f"last action '{executed[-1]}' failed",
                    )
                return self._finish(session, DispatchState.COMPLETED, context, step_no, executed)

            name = SEND_ACTION if step.type == "msg" else (step.action or "")
            try:
                handler = self.registry.get(name)
            except ActionNotFoundError as e:
                logger.error(
                    f"Stopping dispatch: {e}",
                    extra={"session_id": session.session_id, "step": step_no},
                )
                return self._finish(session, DispatchState.FAILED, context, step_no, executed, str(e))

            invocation = ActionInvocation(
                action=name,
                session=session,
                context=copy.deepcopy(context),
                entities=step.entities or {},
                message=step.message,
                text=text,
            )
            executed.append(name)

            try:
                context = await self._invoke(handler, invocation, context)
                last_failed = False
            except HandlerError as e:
                logger.warning(
                    str(e),
                    extra={"session_id": session.session_id, "step": step_no},
                )
                last_failed = True

        error = DispatchLimitExceeded(session.session_id, self.max_steps)
        logger.error(str(error), extra={"session_id": session.session_id})
        return self._finish(session, DispatchState.FAILED, context, self.max_steps, executed, str(error))

    async def _invoke(
        self,
        handler: ActionHandler,
        invocation: ActionInvocation,
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Run a handler, converting every failure into HandlerError."""
        try:
            result = await asyncio.wait_for(handler.run(invocation), timeout=self.action_timeout_s)
        except asyncio.TimeoutError:
            raise HandlerError(invocation.action, f"timed out after {self.action_timeout_s}s")
        except Exception as e:
            raise HandlerError(invocation.action, f"{type(e).__name__}: {e}") from e

        if result is None:
            return context
        if not isinstance(result, Mapping):
            raise HandlerError(invocation.action, f"returned {type(result).__name__}, expected a mapping")
        return dict(result)

    def _finish(
        self,
        session: Session,
        state: DispatchState,
        context: Dict[str, Any],
        steps: int,
        executed: List[str],
        error: Optional[str] = None,
    ) -> DispatchResult:
        logger.info(
            f"Dispatch {state.value} after {steps} step(s)",
            extra={"session_id": session.session_id, "actions": list(executed)},
        )
        return DispatchResult(
            session_id=session.session_id,
            state=state,
            context=context,
            steps=steps,
            actions=executed,
            error=error,
        )
