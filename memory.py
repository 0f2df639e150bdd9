# memory.py
"""
Remembers previous states of board and observer as snapshots.

Stepping forward either replays a remembered snapshot or computes a new
step on deep copies, so the snapshots already in memory are never mutated
by the future.
"""
import logging
from typing import List, NamedTuple

from board import Board
from constants import HISTORY_STEPS
from observer import Observer


class Snapshot(NamedTuple):
    board: Board
    observer: Observer


class Memory:
    """
    A bounded history with a cursor. `moment` is 0 at the latest snapshot
    and negative when stepped back.
    """
    def __init__(self, initial_board: Board, initial_observer: Observer, steps: int = HISTORY_STEPS):
        self.steps = int(steps)
        self.history: List[Snapshot] = []
        self.moment = 0
        self.log(initial_board, initial_observer)

    @property
    def board(self) -> Board:
        return self.history[self._access_at()].board

    @property
    def observer(self) -> Observer:
        return self.history[self._access_at()].observer

    def log(self, board: Board, observer: Observer) -> None:
        """Extends the memory with a new snapshot and makes it active."""
        self.history.append(Snapshot(board, observer))
        if len(self.history) > self.steps:
            self.history.pop(0)
        self.moment = 0

    def step_forward(self) -> bool:
        """Moves to the next remembered snapshot, if there is one."""
        if self.moment < 0:
            self.moment += 1
            return True
        return False

    def step_backward(self) -> bool:
        if self._access_at() > 0:
            self.moment -= 1
            return True
        return False

    def future_changed(self) -> None:
        """Call after the active state has been edited; drops its future."""
        del self.history[self._access_at() + 1:]
        self.moment = 0

    def advance(self) -> None:
        """
        Steps forward in time: from memory if possible, otherwise by
        simulating one step on copies of the active snapshot.
        """
        if self.step_forward():
            return
        board = self.board.copy()
        observer = self.observer.copy()
        board.connect_observer(observer)
        board.step_in_time()
        self.log(board, observer)
        logging.debug(f"New snapshot computed; {len(self.history)} in memory.")

    def _access_at(self) -> int:
        return len(self.history) + self.moment - 1
