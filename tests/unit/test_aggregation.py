"""Tests for sequence() and collect()."""

from __future__ import annotations

from isotope import ErrorKind, IsotopeError, collect, get, log, pure, sequence
from isotope.state import Log


class TestSequence:
    def test_returns_values_in_order(self, state, counter):
        values, after = sequence([counter.ok(1), counter.ok(2), counter.ok(3)]).run_state(None, state)
        assert values == [1, 2, 3]
        assert after.error is None

    def test_empty_list(self, state):
        assert sequence([]).run_state(None, state) == ([], state)

    def test_stops_at_first_failure(self, state, counter):
        """
        GIVEN [ok, ok, fails("X"), ok]
        WHEN sequence runs them
        THEN exactly three steps execute and the error is "X".
        """
        steps = [counter.ok("a"), counter.ok("b"), counter.fails("X"), counter.ok("d")]
        values, after = sequence(steps).run_state(None, state)

        assert values is None
        assert after.error.message == "X"
        assert counter.count == 3
        assert counter.calls == ["'a'", "'b'", "X"]

    def test_final_state_is_state_after_failing_step(self, state, counter):
        steps = [log("one"), log("two"), counter.fails("X"), log("four")]
        _, after = sequence(steps).run_state(None, state)
        assert [e.message for e in after.log] == ["one", "two"]

    def test_threads_state(self, state):
        _, after = sequence([log("one"), log("two")]).run_state(None, state)
        assert [e.message for e in after.log] == ["one", "two"]

    def test_short_circuits_on_entry(self, state, counter):
        failed = state.with_(error=IsotopeError.explicit("earlier"))
        values, after = sequence([counter.ok(1)]).run_state(None, failed)
        assert values is None
        assert after is failed
        assert counter.count == 0

    def test_accepts_generator(self, state):
        values, _ = sequence(pure(i) for i in range(3)).run_state(None, state)
        assert values == [0, 1, 2]


class TestCollect:
    def test_all_succeed(self, state, counter):
        values, after = collect([counter.ok(1), counter.ok(2)]).run_state(None, state)
        assert values == [1, 2]
        assert after.error is None

    def test_aggregates_all_failures(self, state, counter):
        """
        GIVEN [ok, fails("A"), ok, fails("B")]
        WHEN collect runs them
        THEN all four execute, the error is "A | B" and the log is empty.
        """
        steps = [counter.ok(1), counter.fails("A"), counter.ok(3), counter.fails("B")]
        values, after = collect(steps).run_state(None, state)

        assert counter.count == 4
        assert values == [1, None, 3, None]
        assert after.error.message == "A | B"
        assert after.error.kind == ErrorKind.AGGREGATED
        assert [c.message for c in after.error.causes] == ["A", "B"]
        assert after.log == Log()

    def test_single_failure(self, state, counter):
        _, after = collect([counter.fails("only")]).run_state(None, state)
        assert str(after.error) == "only"

    def test_clears_log_window(self, state):
        logged = state.with_(log=Log().write("before"))
        _, after = collect([log("inside"), pure(1)]).run_state(None, logged)
        assert after.log == Log()

    def test_messages_still_reach_logging_action(self, state, recorded):
        collect([log("inside one"), log("inside two")]).run_state(None, state)
        assert recorded == ["inside one", "inside two"]

    def test_threads_state_between_steps(self, state):
        seen = []

        def remember(s):
            seen.append([e.message for e in s.log])
            return pure(None)

        collect([log("first"), get().bind(remember)]).run_state(None, state)
        assert seen == [["first"]]

    def test_short_circuits_on_entry(self, state, counter):
        failed = state.with_(error=IsotopeError.explicit("earlier"))
        values, after = collect([counter.ok(1)]).run_state(None, failed)
        assert values is None
        assert after is failed
        assert counter.count == 0

    def test_empty_list(self, state):
        values, after = collect([]).run_state(None, state)
        assert values == []
        assert after.error is None
