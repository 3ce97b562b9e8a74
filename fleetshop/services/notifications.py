"""User-facing outcome of a mutating action (rendered as a toast by clients)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Notification:
    level: str  # success | partial | error
    title: str
    description: str = ""

    @classmethod
    def success(cls, title: str, description: str = "") -> Notification:
        return cls("success", title, description)

    @classmethod
    def partial(cls, title: str, description: str = "") -> Notification:
        return cls("partial", title, description)

    @classmethod
    def error(cls, title: str, description: str = "") -> Notification:
        return cls("error", title, description)
