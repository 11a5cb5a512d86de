"""Undo journal — all-or-nothing commit across an external call boundary.

Python gives no transactional storage, so the execution engine cannot
rely on its host to discard state changes when an external call fails.
The journal fills that gap:

- While a transaction is open, every store and tracker mutation records
  an undo action, and every observer notification is deferred.
- Commit of the outermost transaction publishes the deferred
  notifications in order. Commit of a nested transaction folds its undo
  actions and notifications into the enclosing frame, so an outer
  rollback still reverses work done by a re-entrant inner call.
- Rollback runs the frame's undo actions newest-first and drops its
  deferred notifications. Nothing from a rolled-back frame is ever
  observed.

Outside a transaction, mutations are final and notifications publish
immediately.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator


Action = Callable[[], None]


@dataclass
class _Frame:
    undo: list[Action] = field(default_factory=list)
    deferred: list[Action] = field(default_factory=list)


class Journal:
    """Stack of open transaction frames."""

    def __init__(self) -> None:
        self._frames: list[_Frame] = []

    @property
    def active(self) -> bool:
        return bool(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def record(self, undo: Action) -> None:
        """Register the inverse of a mutation that has just been applied."""
        if self._frames:
            self._frames[-1].undo.append(undo)

    def defer(self, action: Action) -> None:
        """Run an action at outermost commit, or now if no transaction is open."""
        if self._frames:
            self._frames[-1].deferred.append(action)
        else:
            action()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        frame = _Frame()
        self._frames.append(frame)
        try:
            yield
        except BaseException:
            self._frames.pop()
            for undo in reversed(frame.undo):
                undo()
            raise
        self._frames.pop()
        if self._frames:
            parent = self._frames[-1]
            parent.undo.extend(frame.undo)
            parent.deferred.extend(frame.deferred)
        else:
            for action in frame.deferred:
                action()
