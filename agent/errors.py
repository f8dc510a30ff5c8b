"""
Agent error taxonomy.

Transport and collaborator errors live next to the code that raises them
(AuthenticationError in transport.messenger.security, TransportError in
transport.messenger.sender, DecisionEngineError in inference, ExternalDataError
in services.weather). The errors below belong to the agent core.
"""


class AgentError(Exception):
    """Base class for agent-side failures."""
    pass


class SessionNotFoundError(AgentError):
    """Lookup by an unknown session_id. Indicates a logic bug, never user-facing."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ActionNotFoundError(AgentError):
    """The decision engine named an action that is not registered."""

    def __init__(self, names):
        if isinstance(names, str):
            names = [names]
        self.names = list(names)
        super().__init__(f"Action(s) not registered: {', '.join(self.names)}")


class HandlerError(AgentError):
    """A single action failed. Isolated to that action."""

    def __init__(self, action: str, message: str):
        self.action = action
        super().__init__(f"Action '{action}' failed: {message}")


class DispatchLimitExceeded(AgentError):
    """The engine kept requesting actions past the configured step cap."""

    def __init__(self, session_id: str, max_steps: int):
        self.session_id = session_id
        self.max_steps = max_steps
        super().__init__(
            f"Session {session_id} exceeded {max_steps} dispatch steps"
        )
