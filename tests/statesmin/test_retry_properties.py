"""Tests for the optimistic-concurrency retry wrapper.

Property tests check the attempt counts for every combination of
conflicts-before-success (k) and retry budget (n); unit tests cover the
default budget, non-conflict errors and the decorator form.
"""

from typing import Callable, List

import pytest
from hypothesis import given, settings, strategies as st

from statesmin import (
    Machine,
    MachineBuilder,
    TransitionConflictError,
    retry_conflicts,
    retrying_conflicts,
)


def conflicting_block(conflicts: int, result: str = "ok") -> Callable[[], str]:
    """Return a block that raises TransitionConflictError `conflicts` times."""
    calls: List[int] = []

    def block() -> str:
        calls.append(1)
        if len(calls) <= conflicts:
            raise TransitionConflictError(
                subject_id="order-1",
                expected_version=len(calls),
                actual_version=len(calls) + 1,
            )
        return result

    block.calls = calls  # type: ignore[attr-defined]
    return block


class TestRetryConflictsProperties:

    @given(
        max_retries=st.integers(min_value=0, max_value=8),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_succeeds_within_budget(self, max_retries: int, data) -> None:
        """k <= n conflicts: success value after k + 1 invocations."""
        conflicts = data.draw(st.integers(min_value=0, max_value=max_retries))
        block = conflicting_block(conflicts, result="saved")

        assert retry_conflicts(block, max_retries=max_retries) == "saved"
        assert len(block.calls) == conflicts + 1

    @given(
        max_retries=st.integers(min_value=0, max_value=8),
        extra=st.integers(min_value=1, max_value=5),
    )
    @settings(max_examples=100)
    def test_propagates_after_budget(self, max_retries: int, extra: int) -> None:
        """k > n conflicts: the conflict propagates after n + 1 invocations."""
        block = conflicting_block(max_retries + extra)

        with pytest.raises(TransitionConflictError) as exc_info:
            retry_conflicts(block, max_retries=max_retries)

        assert len(block.calls) == max_retries + 1
        assert exc_info.value.expected_version == max_retries + 1


class TestRetryConflictsUnit:

    def test_default_budget_is_one_retry(self):
        block = conflicting_block(2)
        with pytest.raises(TransitionConflictError):
            retry_conflicts(block)
        assert len(block.calls) == 2

    def test_default_budget_from_environment(self, monkeypatch):
        monkeypatch.setenv("STATESMIN_DEFAULT_MAX_RETRIES", "3")
        block = conflicting_block(3)
        assert retry_conflicts(block) == "ok"
        assert len(block.calls) == 4

    def test_other_errors_are_not_retried(self):
        calls: List[int] = []

        def block():
            calls.append(1)
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            retry_conflicts(block, max_retries=5)
        assert calls == [1]

    def test_negative_budget_raises(self):
        with pytest.raises(ValueError):
            retry_conflicts(lambda: None, max_retries=-1)

    def test_decorator_form(self):
        block = conflicting_block(1, result="done")

        @retrying_conflicts(max_retries=1)
        def checkout(suffix: str) -> str:
            return block() + suffix

        assert checkout("!") == "done!"
        assert len(block.calls) == 2

    def test_available_on_machine(self):
        assert Machine.retry_conflicts(lambda: 5) == 5

    def test_each_attempt_revalidates_the_transition(self):
        """Every retry re-reads the stored state and re-runs the guards."""
        store = {"state": "pending", "version": 1}
        guard_calls: List[str] = []

        builder = MachineBuilder("OrderMachine")
        builder.state("pending", initial=True)
        builder.state("paid")
        builder.transition(from_="pending", to="paid")
        builder.guard_transition(
            to="paid", handler=lambda order: guard_calls.append("guard") or True
        )
        definition = builder.build()

        def pay() -> str:
            version = store["version"]
            machine = Machine(store, state=store["state"], definition=definition)

            def persist(subject, data):
                if len(guard_calls) == 1:
                    # Another writer bumps the version between read and write
                    store["version"] += 1
                if store["version"] != version:
                    raise TransitionConflictError(
                        subject_id="order-1",
                        expected_version=version,
                        actual_version=store["version"],
                    )
                store["state"] = "paid"
                store["version"] += 1
                return "paid"

            return machine.transition_to("paid", body=persist)

        assert retry_conflicts(pay, max_retries=2) == "paid"
        assert guard_calls == ["guard", "guard"]
        assert store == {"state": "paid", "version": 3}
