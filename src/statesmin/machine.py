"""Runtime state machine bound to one subject object.

A Machine pairs a shared, immutable MachineDefinition with one subject
object and one mutable current state. It answers queries about the
current state and executes transitions with this ordering:

1. Validate that (current_state, target) is a declared transition
2. Evaluate matching guards in order; any falsy result rejects
3. Run matching before callbacks
4. Run the caller-supplied body, if any
5. Set the current state to the target (the only mutation point)
6. Run matching after callbacks

After-commit callbacks are not run by a transition. Callers trigger them
with execute(Phase.AFTER_COMMIT, ...) once their own unit of work has
committed.

Machine types are declared either by building a definition explicitly:

    >>> definition = MachineBuilder("Order").state("new", initial=True).build()
    >>> machine = Machine(order, definition=definition)

or by subclassing Machine and implementing ``define``:

    >>> class OrderMachine(Machine):
    ...     @classmethod
    ...     def define(cls, m: MachineBuilder) -> None:
    ...         m.state("pending", initial=True)
    ...         m.state("cancelled")
    ...         m.transition(from_="pending", to="cancelled")
    >>> machine = OrderMachine(order)
"""

from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional

from statesmin.definition import MachineBuilder, MachineDefinition
from statesmin.exceptions import (
    GuardFailedError,
    TransitionFailedError,
    TransitionRejectedError,
)
from statesmin.logging_config import get_logger
from statesmin.models import (
    Phase,
    StateLike,
    TransitionResult,
    state_name,
)
from statesmin.retry import retry_conflicts


logger = get_logger(__name__)


TransitionBody = Callable[[Any, Dict[str, Any]], Any]


class Machine:
    """A state machine instance bound to one subject.

    The subject is passed to every guard and callback and is never copied
    or modified by the machine itself.

    Attributes:
        definition: The shared rule table of this machine type.
        subject: The object whose state this machine tracks.
    """

    definition: ClassVar[Optional[MachineDefinition]] = None

    retry_conflicts = staticmethod(retry_conflicts)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "define" in cls.__dict__:
            builder = MachineBuilder(cls.__name__)
            cls.define(builder)
            cls.definition = builder.build()

    @classmethod
    def define(cls, builder: MachineBuilder) -> None:
        """Declare the states, transitions and callbacks of a subclass.

        Called once, when the subclass is created.
        """
        raise NotImplementedError

    def __init__(
        self,
        subject: Any,
        state: Optional[StateLike] = None,
        definition: Optional[MachineDefinition] = None,
    ):
        """Bind a machine definition to a subject.

        Args:
            subject: The object passed to guards and callbacks.
            state: The state to start in; defaults to the initial state.
            definition: The rule table; defaults to the class definition.

        Raises:
            InvalidStateError: If state is not declared by the definition.
            ValueError: If no definition is available.
        """
        definition = definition or type(self).definition
        if definition is None:
            raise ValueError(
                f"{type(self).__name__} has no machine definition; pass "
                "definition= or implement define()"
            )

        self.definition = definition
        self.subject = subject
        if state is None:
            self._current_state = definition.initial_state
        else:
            self._current_state = definition.validate_state(state)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.definition.name} "
            f"current_state={self._current_state!r}>"
        )

    # Queries ---------------------------------------------------------------

    def current_state(self) -> str:
        return self._current_state

    def in_state(self, *states: Any) -> bool:
        """Check if the current state is one of the given states.

        Accepts any number of states, or lists of states.
        """
        for state in states:
            if isinstance(state, (str, Enum)):
                if state_name(state) == self._current_state:
                    return True
            elif any(state_name(s) == self._current_state for s in state):
                return True
        return False

    def allowed_transitions(self) -> List[str]:
        """Return the states this machine can move to right now.

        A successor is included only if every guard matching the
        transition passes. Order follows the transition declarations.
        """
        chain = self.definition.chain
        return [
            target
            for target in self.definition.successors(self._current_state)
            if chain.failing_guard(self.subject, self._current_state, target) is None
        ]

    def can_transition_to(self, target: StateLike) -> bool:
        """Check if a transition to target is declared and all guards pass."""
        to_state = state_name(target)
        if not self.definition.has_edge(self._current_state, to_state):
            return False
        failing = self.definition.chain.failing_guard(
            self.subject, self._current_state, to_state
        )
        return failing is None

    # Transitions -----------------------------------------------------------

    def attempt_transition(
        self,
        target: StateLike,
        data: Optional[Dict[str, Any]] = None,
        body: Optional[TransitionBody] = None,
    ) -> TransitionResult:
        """Run a transition and report rule violations as a result.

        A transition that is not declared, or that a guard rejects, yields
        a REJECTED result; so does a TransitionFailedError or
        GuardFailedError raised by a before callback or by the body. The
        current state is left untouched in every rejected case. Any other
        error propagates unmodified.

        Args:
            target: The state to move to.
            data: Metadata passed to callbacks and to the body.
            body: Optional ``body(subject, data)`` run just before the state
                  changes; its return value is the result value.

        Returns:
            An OK result carrying the body's return value, or a REJECTED
            result carrying the rule violation.
        """
        from_state = self._current_state
        to_state = state_name(target)
        data = data if data is not None else {}
        chain = self.definition.chain

        if not self.definition.has_edge(from_state, to_state):
            return self._reject(TransitionFailedError(from_state, to_state))

        try:
            guard = chain.failing_guard(self.subject, from_state, to_state)
            if guard is not None:
                return self._reject(
                    GuardFailedError(from_state, to_state, guard.handler)
                )

            chain.run(Phase.BEFORE, self.subject, from_state, to_state, data)

            value = body(self.subject, data) if body is not None else None
        except TransitionRejectedError as exc:
            return self._reject(exc)

        self._current_state = to_state

        chain.run(Phase.AFTER, self.subject, from_state, to_state, data)

        logger.debug(
            "Transition completed",
            machine=self.definition.name,
            from_state=from_state,
            to_state=to_state,
        )
        return TransitionResult.ok(value)

    def transition_to(
        self,
        target: StateLike,
        data: Optional[Dict[str, Any]] = None,
        body: Optional[TransitionBody] = None,
    ) -> Any:
        """Run a transition, raising on rule violations.

        Returns:
            The body's return value, or None when no body is given.

        Raises:
            TransitionFailedError: If the transition is not declared.
            GuardFailedError: If a matching guard returns a falsy value.
        """
        return self.attempt_transition(target, data, body).unwrap()

    def try_transition_to(
        self,
        target: StateLike,
        data: Optional[Dict[str, Any]] = None,
        body: Optional[TransitionBody] = None,
    ) -> Any:
        """Run a transition, returning False on rule violations.

        Only TransitionFailedError and GuardFailedError are turned into
        False; every other error propagates.
        """
        result = self.attempt_transition(target, data, body)
        if not result.succeeded:
            return False
        return result.value

    def execute(
        self,
        phase: Phase,
        from_state: StateLike,
        to_state: StateLike,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Run the callbacks of a phase for a (from_state, to_state) pair.

        This is how callers trigger after-commit callbacks once their own
        transaction has committed.

        Returns:
            The number of callbacks that were run.

        Raises:
            InvalidStateError: If either state is not declared.
        """
        return self.definition.chain.run(
            Phase(phase),
            self.subject,
            self.definition.validate_state(from_state),
            self.definition.validate_state(to_state),
            data,
        )

    def _reject(self, error: TransitionRejectedError) -> TransitionResult:
        logger.info(
            "Transition rejected",
            machine=self.definition.name,
            from_state=error.from_state,
            to_state=str(error.to_state),
            reason=type(error).__name__,
        )
        return TransitionResult.rejected(error)
