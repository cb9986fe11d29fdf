"""Key events as the controllers see them.

Special keys use short lowercase names ("up", "enter", "shift+tab", ...);
printable keys use the character itself as both ``key`` and ``text``.
"""

from __future__ import annotations

from dataclasses import dataclass

FORCE_QUIT = "ctrl+c"
CANCEL = "esc"

UP_KEYS = frozenset({"up", "k"})
DOWN_KEYS = frozenset({"down", "j"})
CONFIRM_KEYS = frozenset({"enter", " "})


@dataclass(frozen=True, slots=True)
class KeyPress:
    key: str
    text: str = ""

    @classmethod
    def char(cls, ch: str) -> "KeyPress":
        if len(ch) != 1:
            raise ValueError("char() expects a single character")
        return cls(key=ch, text=ch)

    @property
    def is_printable(self) -> bool:
        return self.text != "" and self.text.isprintable()


def digit_of(key: str) -> int | None:
    """Return 1-9 for a digit shortcut key, else None."""
    if len(key) == 1 and "1" <= key <= "9":
        return int(key)
    return None
