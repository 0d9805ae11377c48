from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Outcome:
    """Result of a lending operation: a success flag plus a message for the user.

    Truthiness follows ``ok`` so callers can write ``if engine.borrow(...)``.
    """

    ok: bool
    message: str

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, message: str) -> "Outcome":
        return cls(True, message)

    @classmethod
    def failure(cls, message: str) -> "Outcome":
        return cls(False, message)
