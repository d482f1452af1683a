"""Machine definitions and the builder used to declare them.

A MachineDefinition is the immutable rule table of one machine type: its
states, its initial state, the directed transition table and the ordered
chain of guards and callbacks. It is built once per machine type with a
MachineBuilder and shared, read-only, by every Machine bound to it.

Declarations are validated as they are made, so a definition that builds
successfully only refers to declared states and declared transitions.

Example:
    >>> builder = MachineBuilder("OrderMachine")
    >>> builder.state("pending", initial=True).state("cancelled")
    >>> builder.transition(from_="pending", to="cancelled")
    >>> definition = builder.build()
    >>> definition.successors("pending")
    ('cancelled',)
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from statesmin.callbacks import HandlerChain
from statesmin.exceptions import (
    DuplicateStateError,
    InvalidCallbackError,
    InvalidStateError,
    InvalidTransitionError,
    MultipleInitialStatesError,
)
from statesmin.logging_config import get_logger
from statesmin.models import (
    Callback,
    HandlerPattern,
    Phase,
    StateArg,
    StateLike,
    state_name,
    state_names,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class MachineDefinition:
    """Immutable rule table shared by all machines of one type.

    Attributes:
        name: Name of the machine type, used in error messages and logs.
        states: Declared states in declaration order.
        initial_state: The state new machines start in.
        transitions: Successor states per source state, in declaration order.
        chain: Guards and callbacks in registration order.
    """

    name: str
    states: Tuple[str, ...]
    initial_state: str
    transitions: Mapping[str, Tuple[str, ...]]
    chain: HandlerChain

    def has_state(self, state: StateLike) -> bool:
        return state_name(state) in self.states

    def validate_state(self, state: StateLike) -> str:
        """Return the normalised state name or raise if it is not declared.

        Raises:
            InvalidStateError: If the state is not part of the definition.
        """
        name = state_name(state)
        if name not in self.states:
            raise InvalidStateError(state=name, machine=self.name)
        return name

    def successors(self, state: StateLike) -> Tuple[str, ...]:
        """Return the states reachable from a state in one transition."""
        return self.transitions.get(state_name(state), ())

    def has_edge(self, from_state: StateLike, to_state: StateLike) -> bool:
        return state_name(to_state) in self.successors(from_state)

    def callbacks(self, phase: Phase) -> Tuple[Callback, ...]:
        """Return every handler registered for a phase, in order."""
        return self.chain.for_phase(phase)

    def is_terminal(self, state: StateLike) -> bool:
        """Check if a state has no outgoing transitions."""
        return len(self.successors(state)) == 0


class MachineBuilder:
    """Collects state, transition and callback declarations.

    Declaration methods that take no handler return the builder so calls
    can be chained. Guard and callback methods called without a handler
    return a decorator that registers the decorated function.

    Transitions must be declared before the guards and callbacks that refer
    to them, because callback declarations are checked against the
    transition table.

    Example:
        >>> builder = MachineBuilder("OrderMachine")
        >>> builder.state("pending", initial=True)
        >>> builder.state("checking_out")
        >>> builder.transition(from_="pending", to=["checking_out"])
        >>> @builder.guard_transition(to="checking_out")
        ... def in_stock(order):
        ...     return order.in_stock
    """

    def __init__(self, name: str = "Machine"):
        self.name = name
        self._states: List[str] = []
        self._initial_state: Optional[str] = None
        self._transitions: Dict[str, List[str]] = {}
        self._callbacks: List[Callback] = []

    # States and transitions ------------------------------------------------

    def state(self, name: StateLike, initial: bool = False) -> "MachineBuilder":
        """Declare a state.

        Args:
            name: The state name (or a string-valued Enum member).
            initial: Whether machines start in this state.

        Returns:
            The builder, for chaining.

        Raises:
            DuplicateStateError: If the state was already declared.
            MultipleInitialStatesError: If another state is already initial.
        """
        name = state_name(name)
        if name in self._states:
            raise DuplicateStateError(name, machine=self.name)
        if initial and self._initial_state is not None:
            raise MultipleInitialStatesError(
                name, existing=self._initial_state, machine=self.name
            )

        self._states.append(name)
        if initial:
            self._initial_state = name
        return self

    def transition(self, from_: StateLike, to: StateArg) -> "MachineBuilder":
        """Declare the edges from one state to one or more target states.

        Duplicate edges are ignored.

        Args:
            from_: The source state.
            to: A target state or a list of target states.

        Returns:
            The builder, for chaining.

        Raises:
            InvalidStateError: If any state is not declared.
            InvalidTransitionError: If no target state is given.
        """
        source = self._validate_state(from_)
        targets = state_names(to)
        if not targets:
            raise InvalidTransitionError(
                f"No target states given for transition from '{source}'",
                from_states=(source,),
            )
        for target in targets:
            self._validate_state(target)

        successors = self._transitions.setdefault(source, [])
        for target in targets:
            if target not in successors:
                successors.append(target)
        return self

    # Guards and callbacks --------------------------------------------------

    def guard_transition(
        self,
        from_: StateArg = None,
        to: StateArg = None,
        handler: Optional[Callable[..., Any]] = None,
    ) -> Any:
        """Register a guard that must return truthy for matching transitions.

        Guards are called with the subject only and may be called several
        times per transition request, so they should not have side effects.
        """
        return self._register(Phase.GUARD, from_, to, handler)

    def before_transition(
        self,
        from_: StateArg = None,
        to: StateArg = None,
        handler: Optional[Callable[..., Any]] = None,
    ) -> Any:
        """Register a callback run before matching transitions.

        Called as ``handler(subject, to_state, data)``.
        """
        return self._register(Phase.BEFORE, from_, to, handler)

    def after_transition(
        self,
        from_: StateArg = None,
        to: StateArg = None,
        handler: Optional[Callable[..., Any]] = None,
        after_commit: bool = False,
    ) -> Any:
        """Register a callback run after matching transitions.

        Called as ``handler(subject, transition_record)``. With
        ``after_commit=True`` the callback is registered for the
        after-commit phase, which only runs when the caller triggers it.
        """
        phase = Phase.AFTER_COMMIT if after_commit else Phase.AFTER
        return self._register(phase, from_, to, handler)

    def after_commit(
        self,
        from_: StateArg = None,
        to: StateArg = None,
        handler: Optional[Callable[..., Any]] = None,
    ) -> Any:
        """Shorthand for ``after_transition(..., after_commit=True)``."""
        return self._register(Phase.AFTER_COMMIT, from_, to, handler)

    # Build -----------------------------------------------------------------

    def build(self) -> MachineDefinition:
        """Freeze the declarations into a MachineDefinition.

        Raises:
            InvalidStateError: If no states or no initial state were declared.
        """
        if not self._states:
            raise InvalidStateError(
                machine=self.name,
                message=f"{self.name} does not declare any states",
            )
        if self._initial_state is None:
            raise InvalidStateError(
                machine=self.name,
                message=f"{self.name} does not declare an initial state",
            )

        definition = MachineDefinition(
            name=self.name,
            states=tuple(self._states),
            initial_state=self._initial_state,
            transitions=MappingProxyType(
                {source: tuple(targets) for source, targets in self._transitions.items()}
            ),
            chain=HandlerChain(self._callbacks),
        )

        logger.debug(
            "Machine definition built",
            machine=self.name,
            states=len(definition.states),
            initial_state=definition.initial_state,
            edges=sum(len(targets) for targets in definition.transitions.values()),
            handlers=len(definition.chain),
        )
        return definition

    # Internals -------------------------------------------------------------

    def _validate_state(self, state: StateLike) -> str:
        name = state_name(state)
        if name not in self._states:
            raise InvalidStateError(state=name, machine=self.name)
        return name

    def _register(
        self,
        phase: Phase,
        from_: StateArg,
        to: StateArg,
        handler: Optional[Callable[..., Any]],
    ) -> Any:
        from_states = state_names(from_)
        to_states = state_names(to)
        self._validate_callback_condition(from_states, to_states)

        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            if not callable(func):
                raise InvalidCallbackError(func)
            self._callbacks.append(
                Callback(
                    phase=phase,
                    handler=func,
                    pattern=HandlerPattern(from_states=from_states, to_states=to_states),
                    order=len(self._callbacks),
                )
            )
            return func

        if handler is None:
            return register
        register(handler)
        return self

    def _validate_callback_condition(
        self,
        from_states: Optional[Tuple[str, ...]],
        to_states: Optional[Tuple[str, ...]],
    ) -> None:
        for state in (from_states or ()) + (to_states or ()):
            self._validate_state(state)

        for state in from_states or ():
            if not self._transitions.get(state):
                raise InvalidTransitionError(
                    f"Cannot transition away from terminal state '{state}'",
                    from_states=from_states or (),
                    to_states=to_states or (),
                )

        reachable = {t for targets in self._transitions.values() for t in targets}
        for state in to_states or ():
            if state not in reachable:
                raise InvalidTransitionError(
                    f"Cannot transition to unreachable state '{state}'",
                    from_states=from_states or (),
                    to_states=to_states or (),
                )

        if from_states is None or to_states is None:
            return

        if not any(
            target in self._transitions.get(source, ())
            for source in from_states
            for target in to_states
        ):
            raise InvalidTransitionError(
                f"Cannot transition from {list(from_states)} to {list(to_states)}",
                from_states=from_states,
                to_states=to_states,
            )
