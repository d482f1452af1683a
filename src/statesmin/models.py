"""Data models for machine definitions and transitions.

This module defines the value types shared by the builder, the handler
chain and the runtime machine:
- Phase: The phase a guard or callback runs in
- HandlerPattern: The (from, to) pattern a handler is scoped to
- Callback: A registered guard or callback with its pattern and order
- TransitionRecord: The (from, to, data) record passed to after callbacks
- TransitionResult: The outcome of an attempted transition

State names are plain strings. Enum members with a string value are
accepted everywhere a state is expected and normalised by state_name().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from statesmin.exceptions import TransitionRejectedError


StateLike = Union[str, Enum]
StateArg = Union[StateLike, Iterable[StateLike], None]


def state_name(state: StateLike) -> str:
    """Normalise a state argument to its string name.

    Args:
        state: A state name or an Enum member whose value is the name.

    Returns:
        The state name as a string.

    Example:
        >>> state_name("pending")
        'pending'
    """
    if isinstance(state, Enum):
        return str(state.value)
    return str(state)


def state_names(states: StateArg) -> Optional[Tuple[str, ...]]:
    """Normalise a single state, a list of states or None.

    None stays None (the wildcard); anything else becomes a tuple of names
    with duplicates removed and declaration order preserved.
    """
    if states is None:
        return None
    if isinstance(states, (str, Enum)):
        return (state_name(states),)
    names: List[str] = []
    for state in states:
        name = state_name(state)
        if name not in names:
            names.append(name)
    return tuple(names)


class Phase(str, Enum):
    """Phases a handler can be registered for.

    Attributes:
        GUARD: Predicates that must all pass before a transition runs.
        BEFORE: Run before the state changes; errors abort the transition.
        AFTER: Run after the state has changed.
        AFTER_COMMIT: Run only when the caller triggers them with execute().
    """

    GUARD = "guard"
    BEFORE = "before"
    AFTER = "after"
    AFTER_COMMIT = "after_commit"


@dataclass(frozen=True)
class HandlerPattern:
    """The (from, to) pattern a handler is scoped to.

    Either side may be None, which matches any state on that side.
    Otherwise the side matches any of the listed states.
    """

    from_states: Optional[Tuple[str, ...]] = None
    to_states: Optional[Tuple[str, ...]] = None

    def matches(self, from_state: str, to_state: str) -> bool:
        if self.from_states is not None and from_state not in self.from_states:
            return False
        if self.to_states is not None and to_state not in self.to_states:
            return False
        return True


@dataclass(frozen=True)
class Callback:
    """A guard or callback registered on a machine definition.

    Attributes:
        phase: The phase the handler runs in.
        handler: The callable to invoke.
        pattern: The (from, to) pattern the handler is scoped to.
        order: Registration order across the whole definition.
    """

    phase: Phase
    handler: Callable[..., Any]
    pattern: HandlerPattern
    order: int

    def applies_to(self, from_state: str, to_state: str) -> bool:
        return self.pattern.matches(from_state, to_state)

    def __call__(self, *args: Any) -> Any:
        return self.handler(*args)


class TransitionRecord(BaseModel):
    """Record of a single executed transition.

    Passed to after and after-commit callbacks. Records are not stored by
    the engine.

    Attributes:
        from_state: The state before the transition.
        to_state: The state after the transition.
        data: Caller-supplied metadata for the transition.
    """

    model_config = ConfigDict(frozen=True)

    from_state: str = Field(
        ...,
        description="The state before this transition",
    )

    to_state: str = Field(
        ...,
        description="The state after this transition",
    )

    # Passed through as given; not validated or copied
    data: Any = Field(
        default_factory=dict,
        description="Caller-supplied metadata about the transition",
    )


class ResultStatus(str, Enum):
    """Outcome kinds of an attempted transition."""

    OK = "ok"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of Machine.attempt_transition().

    A result is either OK, carrying the body's return value, or REJECTED,
    carrying the rule violation that stopped the transition. Unexpected
    errors are never captured here; they propagate as exceptions.
    """

    status: ResultStatus
    value: Any = None
    error: Optional[TransitionRejectedError] = None

    @classmethod
    def ok(cls, value: Any = None) -> "TransitionResult":
        return cls(status=ResultStatus.OK, value=value)

    @classmethod
    def rejected(cls, error: TransitionRejectedError) -> "TransitionResult":
        return cls(status=ResultStatus.REJECTED, error=error)

    @property
    def succeeded(self) -> bool:
        return self.status is ResultStatus.OK

    def unwrap(self) -> Any:
        """Return the value of an OK result or raise the rejection error."""
        if self.error is not None:
            raise self.error
        return self.value
