"""Tests for the undo journal — proves commit, rollback and nesting semantics."""

import pytest

from multisig.engine.journal import Journal


class TestOutsideTransaction:
    def test_record_is_ignored(self) -> None:
        journal = Journal()
        undone: list[str] = []
        journal.record(lambda: undone.append("x"))
        assert not journal.active
        assert undone == []

    def test_defer_runs_immediately(self) -> None:
        journal = Journal()
        ran: list[str] = []
        journal.defer(lambda: ran.append("now"))
        assert ran == ["now"]


class TestTransaction:
    def test_commit_runs_deferred_in_order(self) -> None:
        journal = Journal()
        ran: list[int] = []
        with journal.transaction():
            journal.defer(lambda: ran.append(1))
            journal.defer(lambda: ran.append(2))
            assert ran == []
        assert ran == [1, 2]
        assert journal.depth == 0

    def test_rollback_undoes_newest_first_and_drops_deferred(self) -> None:
        journal = Journal()
        state = [1, 2, 3]
        ran: list[str] = []
        with pytest.raises(RuntimeError):
            with journal.transaction():
                state.append(4)
                journal.record(state.pop)
                state[0] = 100
                journal.record(lambda: state.__setitem__(0, 1))
                journal.defer(lambda: ran.append("event"))
                raise RuntimeError("boom")
        assert state == [1, 2, 3]
        assert ran == []
        assert not journal.active

    def test_nested_commit_folds_into_parent(self) -> None:
        journal = Journal()
        state: list[str] = []
        ran: list[str] = []
        with pytest.raises(RuntimeError):
            with journal.transaction():
                with journal.transaction():
                    state.append("inner")
                    journal.record(state.pop)
                    journal.defer(lambda: ran.append("inner"))
                assert journal.depth == 1
                assert ran == []
                raise RuntimeError("outer fails")
        assert state == []
        assert ran == []

    def test_nested_rollback_keeps_parent(self) -> None:
        journal = Journal()
        state: list[str] = []
        ran: list[str] = []
        with journal.transaction():
            state.append("outer")
            journal.record(state.pop)
            journal.defer(lambda: ran.append("outer"))
            with pytest.raises(ValueError):
                with journal.transaction():
                    state.append("inner")
                    journal.record(state.pop)
                    journal.defer(lambda: ran.append("inner"))
                    raise ValueError("inner fails")
            assert state == ["outer"]
        assert state == ["outer"]
        assert ran == ["outer"]

    def test_nested_commit_publishes_at_outermost(self) -> None:
        journal = Journal()
        ran: list[str] = []
        with journal.transaction():
            journal.defer(lambda: ran.append("a"))
            with journal.transaction():
                journal.defer(lambda: ran.append("b"))
            journal.defer(lambda: ran.append("c"))
        assert ran == ["a", "b", "c"]
