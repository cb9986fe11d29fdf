"""Colour themes and the registry that tracks the active one.

The registry is the only object shared between the event loop and the
renderer, so every access goes through a lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

RGB = tuple[int, int, int]

DEFAULT_THEME_ID = "midnight"


def hex_to_rgb(value: str) -> RGB:
    raw = value.lstrip("#")
    if len(raw) != 6:
        raise ValueError(f"expected #RRGGBB colour, got {value!r}")
    return (int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16))


@dataclass(frozen=True, slots=True)
class ThemeColors:
    primary: RGB
    secondary: RGB
    accent: RGB
    background: RGB
    border: RGB
    error: RGB
    success: RGB
    warning: RGB

    @classmethod
    def from_hex(cls, **colors: str) -> "ThemeColors":
        return cls(**{name: hex_to_rgb(value) for name, value in colors.items()})


@dataclass(frozen=True, slots=True)
class Theme:
    theme_id: str
    name: str
    description: str
    colors: ThemeColors


BUILTIN_THEMES: tuple[Theme, ...] = (
    Theme(
        "midnight",
        "午夜 (Midnight)",
        "深邃午夜，神秘冷峻",
        ThemeColors.from_hex(
            primary="#E0E7FF",
            secondary="#9CA3AF",
            accent="#60A5FA",
            background="#1E293B",
            border="#475569",
            error="#F87171",
            success="#34D399",
            warning="#FBBF24",
        ),
    ),
    Theme(
        "blood_moon",
        "血月 (Blood Moon)",
        "血色迷霧，恐怖氛圍",
        ThemeColors.from_hex(
            primary="#FCA5A5",
            secondary="#881337",
            accent="#DC2626",
            background="#450A0A",
            border="#7F1D1D",
            error="#FEE2E2",
            success="#86EFAC",
            warning="#FDE047",
        ),
    ),
    Theme(
        "terminal_green",
        "終端綠 (Terminal Green)",
        "經典終端，復古綠光",
        ThemeColors.from_hex(
            primary="#00FF00",
            secondary="#008000",
            accent="#00FF00",
            background="#000000",
            border="#00AA00",
            error="#FF0000",
            success="#00FF00",
            warning="#FFFF00",
        ),
    ),
    Theme(
        "silent_hill_fog",
        "寂靜嶺迷霧 (Silent Hill Fog)",
        "迷霧寂靜，詭譎不安",
        ThemeColors.from_hex(
            primary="#D1D5DB",
            secondary="#6B7280",
            accent="#FCD34D",
            background="#374151",
            border="#9CA3AF",
            error="#EF4444",
            success="#10B981",
            warning="#F59E0B",
        ),
    ),
    Theme(
        "high_contrast",
        "高對比 (High Contrast)",
        "高對比，清晰易讀",
        ThemeColors.from_hex(
            primary="#FFFFFF",
            secondary="#CCCCCC",
            accent="#FFFF00",
            background="#000000",
            border="#FFFFFF",
            error="#FF0000",
            success="#00FF00",
            warning="#FFFF00",
        ),
    ),
)


class ThemeNotFoundError(KeyError):
    pass


class ThemeRegistry:
    def __init__(self, themes: tuple[Theme, ...] = BUILTIN_THEMES, *, current_id: str = DEFAULT_THEME_ID) -> None:
        if not themes:
            raise ValueError("themes must not be empty")
        ids = [t.theme_id for t in themes]
        if len(set(ids)) != len(ids):
            raise ValueError("theme ids must be unique")
        if current_id not in ids:
            raise ValueError(f"unknown current theme: {current_id!r}")
        self._themes = tuple(themes)
        self._by_id = {t.theme_id: t for t in themes}
        self._current_id = current_id
        self._lock = threading.Lock()

    def current(self) -> Theme:
        with self._lock:
            return self._by_id[self._current_id]

    def get(self, theme_id: str) -> Theme | None:
        return self._by_id.get(theme_id)

    def all(self) -> list[Theme]:
        return list(self._themes)

    def index_of(self, theme_id: str) -> int:
        for idx, theme in enumerate(self._themes):
            if theme.theme_id == theme_id:
                return idx
        return -1

    def set_current(self, theme_id: str) -> None:
        if theme_id not in self._by_id:
            raise ThemeNotFoundError(theme_id)
        with self._lock:
            self._current_id = theme_id

    def is_current(self, theme_id: str) -> bool:
        with self._lock:
            return self._current_id == theme_id
