"""Mixin forwarding state queries and transitions to a Machine.

Service objects that own a Machine can mix in TransitionHelper to expose
the machine's readers directly and to run their own ``transition`` method
as the body of every transition.

A class using the mixin must provide:
- ``state_machine``: the Machine instance, as a property, a class
  attribute, or an annotated instance attribute set in ``__init__``
- ``transition(next_state, data)``: the work performed by a transition

Concrete classes missing either member are rejected when the class is
created. Classes declared with ``abstract=True`` skip that check and raise
MethodNotImplementedError when the missing member is first used.

Example:
    >>> class Checkout(TransitionHelper):
    ...     state_machine: OrderMachine
    ...
    ...     def __init__(self, order):
    ...         self.order = order
    ...         self.state_machine = OrderMachine(order)
    ...
    ...     def transition(self, next_state, data):
    ...         return self.order.save(status=next_state)
    >>> Checkout(order).transition_to("checking_out")
"""

import inspect
from typing import Any, Dict, List, Optional

from statesmin.exceptions import MethodNotImplementedError
from statesmin.models import StateLike


REQUIRED_MEMBERS = ("state_machine", "transition")

DELEGATED_METHODS = (
    "allowed_transitions",
    "can_transition_to",
    "current_state",
    "in_state",
)


def _declares(cls: type, name: str) -> bool:
    if hasattr(cls, name):
        return True
    return any(name in inspect.get_annotations(klass) for klass in cls.__mro__)


class TransitionHelper:
    """Delegates machine readers and wraps transitions with ``transition``."""

    DELEGATED_METHODS = DELEGATED_METHODS

    def __init_subclass__(cls, abstract: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if abstract:
            return
        if not _declares(cls, "state_machine"):
            raise MethodNotImplementedError("state_machine", cls.__name__)
        if not callable(getattr(cls, "transition", None)):
            raise MethodNotImplementedError("transition", cls.__name__)

    def __getattr__(self, name: str) -> Any:
        if name in REQUIRED_MEMBERS:
            raise MethodNotImplementedError(name, type(self).__name__)
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute {name!r}"
        )

    # Delegated readers -----------------------------------------------------

    def allowed_transitions(self) -> List[str]:
        return self.state_machine.allowed_transitions()

    def can_transition_to(self, target: StateLike) -> bool:
        return self.state_machine.can_transition_to(target)

    def current_state(self) -> str:
        return self.state_machine.current_state()

    def in_state(self, *states: Any) -> bool:
        return self.state_machine.in_state(*states)

    # Transitions -----------------------------------------------------------

    def transition_to(
        self,
        next_state: StateLike,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Transition the machine, running ``transition`` as the body.

        Returns:
            The return value of ``transition(next_state, data)``.

        Raises:
            MethodNotImplementedError: If ``transition`` or
                                       ``state_machine`` is missing.
            TransitionFailedError: If the transition is not declared.
            GuardFailedError: If a guard rejects the transition.
        """
        transition = self.transition
        return self.state_machine.transition_to(
            next_state,
            data,
            body=lambda _subject, payload: transition(next_state, payload),
        )

    def try_transition_to(
        self,
        next_state: StateLike,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Like transition_to(), but returns False on rule violations."""
        transition = self.transition
        return self.state_machine.try_transition_to(
            next_state,
            data,
            body=lambda _subject, payload: transition(next_state, payload),
        )
