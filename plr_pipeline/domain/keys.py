"""Composite keys identifying trials and measurement occasions."""
from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Eye(str, Enum):
    """Measured eye."""

    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def parse(cls, value) -> "Eye":
        """Accept ``Eye`` members, ``Left``/``Right`` and ``L``/``R`` in any case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            v = value.strip().lower()
            if v in ("left", "l"):
                return cls.LEFT
            if v in ("right", "r"):
                return cls.RIGHT
        raise ValueError(f"Unknown eye: {value!r}")

    def __str__(self) -> str:
        return self.value


class OccasionKey(NamedTuple):
    """One measurement occasion (mtm) of one eye of one participant."""

    participant_id: str
    eye: Eye
    occasion: str

    def __str__(self) -> str:
        return f"{self.participant_id}/{self.eye}/{self.occasion}"


class TrialKey(NamedTuple):
    """One repeat attempt at an occasion."""

    participant_id: str
    eye: Eye
    occasion: str
    attempt: int

    @property
    def occasion_key(self) -> OccasionKey:
        return OccasionKey(self.participant_id, self.eye, self.occasion)

    def __str__(self) -> str:
        return f"{self.participant_id}/{self.eye}/{self.occasion}#{self.attempt}"
