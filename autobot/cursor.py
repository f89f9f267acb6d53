"""Time-travel cursor over a conversation's event log."""

from typing import List, Sequence, TypeVar

from .errors import ValidationError

T = TypeVar("T")


class TimeTravelCursor:
    """
    Index into an event log selecting which prefix is visible.

    ``position`` ranges over ``[-1, length - 1]``; ``-1`` is the start of the
    session (nothing visible). Appending always returns to live mode.
    """

    def __init__(self, length: int = 0):
        self.length = 0
        self.position = -1
        self.reset(length)

    @property
    def is_live(self) -> bool:
        return self.position == self.length - 1

    def on_append(self, count: int = 1) -> None:
        self.length += count
        self.position = self.length - 1

    def set(self, position: int) -> None:
        if not -1 <= position <= self.length - 1:
            raise ValidationError(
                f"Cursor {position} out of range [-1, {self.length - 1}]"
            )
        self.position = position

    def step(self, delta: int) -> None:
        self.position = max(-1, min(self.length - 1, self.position + delta))

    def go_live(self) -> None:
        self.position = self.length - 1

    def reset(self, length: int) -> None:
        if length < 0:
            raise ValidationError("Log length cannot be negative")
        self.length = length
        self.position = length - 1

    def visible(self, events: Sequence[T]) -> List[T]:
        return list(events[: self.position + 1])
