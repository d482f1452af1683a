"""Error taxonomy for the statesmin engine.

All errors raised by the engine derive from StatesminError. The two
rule-violation errors (TransitionFailedError and GuardFailedError) share
the TransitionRejectedError base; that family is the only one the
permissive transition form turns into a ``False`` return value.

Every error keeps the identifying context (state names, class names) it
was raised with as attributes, so callers can build their own messages.
"""

from typing import Any, Iterable, Optional


class StatesminError(Exception):
    """Base class for every error raised by statesmin."""


class InvalidStateError(StatesminError):
    """Raised when a state is not part of a machine's state set.

    Raised when constructing a Machine with an unknown state, when a
    declaration references an undeclared state, or when a definition is
    built without any (initial) state.

    Attributes:
        state: The offending state name, if any.
        machine: Name of the machine type involved, if known.
    """

    def __init__(
        self,
        state: Optional[str] = None,
        machine: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.state = state
        self.machine = machine
        if message is None:
            message = f"Invalid state '{state}'"
            if machine:
                message += f" for {machine}"
        super().__init__(message)


class DuplicateStateError(InvalidStateError):
    """Raised when the same state is declared twice."""

    def __init__(self, state: str, machine: Optional[str] = None):
        message = f"State '{state}' is already declared"
        if machine:
            message += f" on {machine}"
        super().__init__(state=state, machine=machine, message=message)


class MultipleInitialStatesError(InvalidStateError):
    """Raised when a second state is declared with ``initial=True``.

    Attributes:
        existing: The state that was already marked initial.
    """

    def __init__(self, state: str, existing: str, machine: Optional[str] = None):
        self.existing = existing
        message = (
            f"Cannot mark '{state}' as initial: '{existing}' is already "
            "the initial state"
        )
        if machine:
            message += f" of {machine}"
        super().__init__(state=state, machine=machine, message=message)


class InvalidTransitionError(StatesminError):
    """Raised when a callback is declared for a transition that cannot happen.

    Attributes:
        from_states: The `from` states named by the declaration.
        to_states: The `to` states named by the declaration.
    """

    def __init__(
        self,
        message: str,
        from_states: Iterable[str] = (),
        to_states: Iterable[str] = (),
    ):
        self.from_states = tuple(from_states)
        self.to_states = tuple(to_states)
        super().__init__(message)


class InvalidCallbackError(StatesminError):
    """Raised when a guard or callback handler is not callable."""

    def __init__(self, handler: Any):
        self.handler = handler
        super().__init__(f"Callback handler {handler!r} is not callable")


class TransitionRejectedError(StatesminError):
    """Base for expected rule violations during a transition.

    Attributes:
        from_state: The state the machine was in.
        to_state: The requested target state.
    """

    def __init__(self, from_state: str, to_state: Any, message: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(message)


class TransitionFailedError(TransitionRejectedError):
    """Raised when the requested transition is not a declared edge."""

    def __init__(self, from_state: str, to_state: Any):
        super().__init__(
            from_state,
            to_state,
            f"Cannot transition from '{from_state}' to '{to_state}'",
        )


class GuardFailedError(TransitionRejectedError):
    """Raised when a guard matching the transition returns a falsy value.

    Attributes:
        guard: The guard callable that rejected the transition.
    """

    def __init__(self, from_state: str, to_state: str, guard: Any = None):
        self.guard = guard
        super().__init__(
            from_state,
            to_state,
            f"Guard on transition from '{from_state}' to '{to_state}' "
            "returned false",
        )


class TransitionConflictError(StatesminError):
    """Raised by caller logic when an optimistic-concurrency check fails.

    The engine never raises this itself; retry_conflicts() is the only
    place that catches it.

    Attributes:
        subject_id: Identifier of the subject with the conflict, if known.
        expected_version: The version the caller expected.
        actual_version: The version actually found.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        subject_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        self.subject_id = subject_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        if message is None:
            message = "Transition conflict"
            if subject_id is not None:
                message += f" for {subject_id}"
            if expected_version is not None:
                message += f": expected version {expected_version}"
                if actual_version is not None:
                    message += f", found {actual_version}"
        super().__init__(message)


class MethodNotImplementedError(StatesminError, NotImplementedError):
    """Raised when a class using TransitionHelper lacks a required member.

    Attributes:
        method_name: The missing method (``state_machine`` or ``transition``).
        class_name: The class that should have defined it.
    """

    def __init__(self, method_name: str, class_name: str):
        self.method_name = method_name
        self.class_name = class_name
        super().__init__(
            f"'{method_name}' is not implemented in {class_name}; classes "
            f"using TransitionHelper must define it"
        )
