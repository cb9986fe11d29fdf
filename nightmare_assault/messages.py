"""Events, completion messages and effects exchanged with the event loop.

Controllers never perform I/O. They return effects, and the loop turns
effects back into events:

- ``Emit`` runs a message through the root update before any queued input.
- ``Schedule`` fires a message once after a delay (timer ticks).
- ``Dispatch`` runs a job off the loop; its outcome returns as ``TaskDone``.
- ``Quit`` stops the loop.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Token = tuple[int, int]


# Events -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Tick:
    timer: str
    token: Token


@dataclass(frozen=True, slots=True)
class TaskDone:
    name: str
    token: Token
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# Completion messages ------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MenuSelected:
    action: Any


@dataclass(frozen=True, slots=True)
class ThemeSelected:
    theme_id: str


@dataclass(frozen=True, slots=True)
class ThemeBack:
    pass


@dataclass(frozen=True, slots=True)
class WizardFinished:
    wizard: str
    result: Any = None
    cancelled: bool = False


@dataclass(frozen=True, slots=True)
class DeathSelected:
    action: Any


@dataclass(frozen=True, slots=True)
class DebriefSelected:
    action: Any


@dataclass(frozen=True, slots=True)
class PlayerDied:
    """Raised by the narrative engine when the player dies."""

    report: Any


# Effects ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Emit:
    message: object


@dataclass(frozen=True, slots=True)
class Schedule:
    delay_s: float
    message: object


@dataclass(frozen=True, slots=True)
class Dispatch:
    name: str
    token: Token
    job: Callable[[], object]


@dataclass(frozen=True, slots=True)
class Quit:
    pass


Effects = tuple[object, ...]
NO_EFFECTS: Effects = ()
