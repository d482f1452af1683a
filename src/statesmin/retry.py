"""Retry wrapper for optimistic-concurrency conflicts.

The engine does not detect conflicts itself. Callers that persist state
with an optimistic lock raise TransitionConflictError when the lock check
fails; retry_conflicts() re-runs the whole block, so every attempt reads
the current state and re-evaluates guards from scratch.
"""

import functools
from typing import Any, Callable, Optional, TypeVar

from statesmin.config import get_settings
from statesmin.exceptions import TransitionConflictError
from statesmin.logging_config import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


def retry_conflicts(
    block: Callable[[], T],
    max_retries: Optional[int] = None,
) -> T:
    """Call block, retrying it when it raises TransitionConflictError.

    Args:
        block: Zero-argument callable performing the guarded transition.
        max_retries: Additional attempts after the first one. Defaults to
                     the ``default_max_retries`` setting.

    Returns:
        The return value of the first attempt that does not conflict.

    Raises:
        TransitionConflictError: The last conflict, once all attempts fail.
        ValueError: If max_retries is negative.

    Example:
        >>> def checkout():
        ...     machine = OrderMachine(order, state=repository.load_state(order))
        ...     machine.transition_to("checking_out")
        ...     repository.save_state(order, machine.current_state())
        >>> retry_conflicts(checkout, max_retries=3)
    """
    if max_retries is None:
        max_retries = get_settings().default_max_retries
    if max_retries < 0:
        raise ValueError("max_retries cannot be negative")

    attempts = 0
    while True:
        attempts += 1
        try:
            return block()
        except TransitionConflictError as exc:
            if attempts > max_retries:
                logger.warning(
                    "Transition conflict retries exhausted",
                    attempts=attempts,
                    error=str(exc),
                )
                raise
            logger.warning(
                "Transition conflict, retrying",
                attempt=attempts,
                max_retries=max_retries,
                error=str(exc),
            )


def retrying_conflicts(
    max_retries: Optional[int] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of retry_conflicts().

    Example:
        >>> @retrying_conflicts(max_retries=2)
        ... def checkout(order_id):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return retry_conflicts(lambda: func(*args, **kwargs), max_retries)

        return wrapper

    return decorator
