"""Ordered guard and callback dispatch.

HandlerChain holds every guard and callback of a machine definition in
registration order. Handlers are selected by a linear scan over the
chain, filtering on phase and on the (from, to) pattern, and invoked in
the order they were declared.

Handler signatures by phase:
- guard: ``guard(subject) -> bool``
- before: ``callback(subject, to_state, data)``
- after / after_commit: ``callback(subject, transition_record)``
"""

from typing import Any, Iterable, List, Optional, Tuple

from statesmin.logging_config import get_logger
from statesmin.models import Callback, Phase, TransitionRecord


logger = get_logger(__name__)


class HandlerChain:
    """Immutable, ordered chain of guards and callbacks.

    Attributes:
        handlers: Every registered handler in registration order.
    """

    def __init__(self, handlers: Iterable[Callback] = ()):
        self.handlers: Tuple[Callback, ...] = tuple(
            sorted(handlers, key=lambda handler: handler.order)
        )

    def __len__(self) -> int:
        return len(self.handlers)

    def for_phase(self, phase: Phase) -> Tuple[Callback, ...]:
        """Return every handler registered for a phase, in order."""
        phase = Phase(phase)
        return tuple(h for h in self.handlers if h.phase is phase)

    def matching(
        self,
        phase: Phase,
        from_state: str,
        to_state: str,
    ) -> List[Callback]:
        """Return the handlers of a phase whose pattern matches the pair.

        Args:
            phase: The phase to select.
            from_state: The state being left.
            to_state: The state being entered.

        Returns:
            Matching handlers in registration order.
        """
        return [
            handler
            for handler in self.for_phase(phase)
            if handler.applies_to(from_state, to_state)
        ]

    def failing_guard(
        self,
        subject: Any,
        from_state: str,
        to_state: str,
    ) -> Optional[Callback]:
        """Evaluate the matching guards and return the first one that fails.

        Guards run in registration order and evaluation stops at the first
        falsy result. Errors raised by a guard propagate unmodified.

        Returns:
            The failing guard, or None when all guards pass.
        """
        for guard in self.matching(Phase.GUARD, from_state, to_state):
            if not guard(subject):
                return guard
        return None

    def run(
        self,
        phase: Phase,
        subject: Any,
        from_state: str,
        to_state: str,
        data: Any = None,
    ) -> int:
        """Run every callback of a phase matching (from_state, to_state).

        Errors raised by a callback propagate unmodified and stop the
        remaining callbacks of the phase.

        Args:
            phase: BEFORE, AFTER or AFTER_COMMIT.
            subject: The object the machine is bound to.
            from_state: The state being left.
            to_state: The state being entered.
            data: Caller-supplied transition metadata.

        Returns:
            The number of callbacks that were run.

        Raises:
            ValueError: If phase is GUARD; guards are evaluated with
                        failing_guard().
        """
        phase = Phase(phase)
        if phase is Phase.GUARD:
            raise ValueError("Guards are evaluated with failing_guard(), not run()")

        data = data if data is not None else {}
        callbacks = self.matching(phase, from_state, to_state)
        if not callbacks:
            return 0

        if phase is Phase.BEFORE:
            args: Tuple[Any, ...] = (subject, to_state, data)
        else:
            record = TransitionRecord(
                from_state=from_state,
                to_state=to_state,
                data=data,
            )
            args = (subject, record)

        for callback in callbacks:
            callback(*args)

        logger.debug(
            "Callbacks executed",
            phase=phase.value,
            from_state=from_state,
            to_state=to_state,
            count=len(callbacks),
        )
        return len(callbacks)
