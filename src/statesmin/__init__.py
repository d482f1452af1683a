"""Finite-state-machine definitions and execution.

This package lets an application declare, per entity type, its valid
states, the transitions allowed between them and guard/callback hooks on
those transitions, then validate and execute state changes for one
object at a time:
- MachineBuilder / MachineDefinition: the immutable rule table
- Machine: the runtime bound to a subject object
- retry_conflicts: optimistic-concurrency retry wrapper
- TransitionHelper: mixin delegating to an object's Machine
"""

from statesmin.definition import MachineBuilder, MachineDefinition
from statesmin.exceptions import (
    DuplicateStateError,
    GuardFailedError,
    InvalidCallbackError,
    InvalidStateError,
    InvalidTransitionError,
    MethodNotImplementedError,
    MultipleInitialStatesError,
    StatesminError,
    TransitionConflictError,
    TransitionFailedError,
    TransitionRejectedError,
)
from statesmin.machine import Machine
from statesmin.models import (
    Phase,
    ResultStatus,
    TransitionRecord,
    TransitionResult,
)
from statesmin.retry import retry_conflicts, retrying_conflicts
from statesmin.transition_helper import TransitionHelper

__all__ = [
    # Definition
    "MachineBuilder",
    "MachineDefinition",
    # Runtime
    "Machine",
    "Phase",
    "ResultStatus",
    "TransitionRecord",
    "TransitionResult",
    "TransitionHelper",
    # Retry
    "retry_conflicts",
    "retrying_conflicts",
    # Errors
    "DuplicateStateError",
    "GuardFailedError",
    "InvalidCallbackError",
    "InvalidStateError",
    "InvalidTransitionError",
    "MethodNotImplementedError",
    "MultipleInitialStatesError",
    "StatesminError",
    "TransitionConflictError",
    "TransitionFailedError",
    "TransitionRejectedError",
]
