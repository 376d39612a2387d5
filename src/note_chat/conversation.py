"""Ordered conversation storage with snapshots and removal by identity."""

from __future__ import annotations

import json

from .models import ChatTurn


class Conversation:
    """Ordered sequence of chat turns owned by a single session.

    Readers get tuples of immutable turns; the live list never leaves this
    object.
    """

    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def __bool__(self) -> bool:
        return bool(self._turns)

    def snapshot(self) -> tuple[ChatTurn, ...]:
        """Return a point-in-time copy of all turns."""
        return tuple(self._turns)

    def append(self, turn: ChatTurn) -> ChatTurn:
        """Append a turn and return it."""
        self._turns.append(turn)
        return turn

    def remove(self, turn: ChatTurn) -> bool:
        """Remove the most recent occurrence of ``turn`` by identity.

        Returns False when the turn is no longer present (for example after a
        clear), leaving the sequence untouched.
        """
        for index in range(len(self._turns) - 1, -1, -1):
            if self._turns[index] is turn:
                del self._turns[index]
                return True
        return False

    def clear(self) -> None:
        self._turns = []

    def export_json(self) -> str:
        """Export history using stable list and field ordering."""
        return json.dumps(
            [turn.to_message() for turn in self._turns],
            ensure_ascii=False,
            separators=(",", ":"),
        )
