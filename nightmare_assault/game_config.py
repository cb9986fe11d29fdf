from __future__ import annotations

import re
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

THEME_MIN_LENGTH = 3
THEME_MAX_LENGTH = 100

# Substrings that could be used to steer the story model's prompt.
DANGEROUS_PATTERNS: tuple[str, ...] = (
    "ignore",
    "forget",
    "disregard",
    "system:",
    "assistant:",
    "user:",
    "<|",
    "|>",
    "```",
    "[inst]",
    "[/inst]",
)

_DANGEROUS_RE = re.compile("|".join(re.escape(p) for p in DANGEROUS_PATTERNS), re.IGNORECASE)


class ThemeValidationError(ValueError):
    pass


class ConfigFrozenError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("遊戲配置已凍結，無法修改")


class Difficulty(str, Enum):
    EASY = "easy"
    HARD = "hard"
    HELL = "hell"

    @property
    def label(self) -> str:
        return _DIFFICULTY_LABELS[self]

    @property
    def description(self) -> str:
        return _DIFFICULTY_DESCRIPTIONS[self]

    @property
    def hp_multiplier(self) -> float:
        return {Difficulty.EASY: 0.5, Difficulty.HARD: 1.0, Difficulty.HELL: 1.5}[self]

    @property
    def san_multiplier(self) -> float:
        return {Difficulty.EASY: 0.7, Difficulty.HARD: 1.0, Difficulty.HELL: 1.3}[self]

    @property
    def hints_enabled(self) -> bool:
        return self is Difficulty.EASY

    @property
    def is_permadeath(self) -> bool:
        return self is Difficulty.HELL

    @property
    def allows_rollback(self) -> bool:
        return self is Difficulty.EASY


_DIFFICULTY_LABELS = {
    Difficulty.EASY: "簡單",
    Difficulty.HARD: "困難",
    Difficulty.HELL: "地獄",
}

_DIFFICULTY_DESCRIPTIONS = {
    Difficulty.EASY: "HP 消耗 0.5x，SAN 消耗 0.7x，敵人較弱，提示啟用",
    Difficulty.HARD: "HP 消耗 1.0x，SAN 消耗 1.0x，敵人標準，標準模式",
    Difficulty.HELL: "HP 消耗 1.5x，SAN 消耗 1.3x，敵人致命，永久死亡",
}


class GameLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def label(self) -> str:
        return {GameLength.SHORT: "短篇", GameLength.MEDIUM: "中篇", GameLength.LONG: "長篇"}[self]

    @property
    def description(self) -> str:
        return f"約 {self.estimated_minutes} 分鐘，{_LENGTH_BLURBS[self]}"

    @property
    def estimated_minutes(self) -> int:
        return {GameLength.SHORT: 15, GameLength.MEDIUM: 30, GameLength.LONG: 60}[self]

    @property
    def event_count(self) -> int:
        return {GameLength.SHORT: 8, GameLength.MEDIUM: 15, GameLength.LONG: 25}[self]


_LENGTH_BLURBS = {
    GameLength.SHORT: "精簡劇情",
    GameLength.MEDIUM: "標準體驗",
    GameLength.LONG: "完整冒險",
}


def validate_theme(text: str) -> None:
    """Raise ThemeValidationError unless ``text`` is usable as a story theme.

    Length is counted in code points after trimming, so "廢棄醫院" is four
    characters long.
    """
    theme = text.strip()
    length = len(theme)
    if length < THEME_MIN_LENGTH:
        raise ThemeValidationError(f"主題必須至少 {THEME_MIN_LENGTH} 個字元")
    if length > THEME_MAX_LENGTH:
        raise ThemeValidationError(f"主題不能超過 {THEME_MAX_LENGTH} 個字元")
    if _DANGEROUS_RE.search(theme):
        raise ThemeValidationError("主題包含不允許的字元")
    if any(ord(ch) < 32 and ch != "\t" for ch in theme):
        raise ThemeValidationError("主題包含不允許的字元")


def sanitize_theme(text: str) -> str:
    cleaned = _DANGEROUS_RE.sub("", text.strip())
    cleaned = "".join(ch for ch in cleaned if ord(ch) >= 32 or ch == "\t")
    return cleaned.strip()


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Draft configuration for a new run.

    Every setter returns a new value. Once ``freeze()`` has been called the
    setters raise ConfigFrozenError instead.
    """

    theme: str = ""
    difficulty: Difficulty = Difficulty.HARD
    length: GameLength = GameLength.MEDIUM
    adult_mode: bool = False
    created_at: float = field(default_factory=time.time)
    frozen: bool = False

    def _check_mutable(self) -> None:
        if self.frozen:
            raise ConfigFrozenError()

    def with_theme(self, text: str) -> "GameConfig":
        self._check_mutable()
        validate_theme(text)
        return replace(self, theme=sanitize_theme(text))

    def with_difficulty(self, difficulty: Difficulty) -> "GameConfig":
        self._check_mutable()
        return replace(self, difficulty=Difficulty(difficulty))

    def with_length(self, length: GameLength) -> "GameConfig":
        self._check_mutable()
        return replace(self, length=GameLength(length))

    def with_adult_mode(self, enabled: bool) -> "GameConfig":
        self._check_mutable()
        return replace(self, adult_mode=bool(enabled))

    def freeze(self) -> "GameConfig":
        if self.frozen:
            return self
        return replace(self, frozen=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme": self.theme,
            "difficulty": self.difficulty.value,
            "length": self.length.value,
            "adult_mode": self.adult_mode,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: object) -> "GameConfig":
        if not isinstance(data, dict):
            return cls()
        try:
            difficulty = Difficulty(data.get("difficulty", Difficulty.HARD.value))
        except ValueError:
            difficulty = Difficulty.HARD
        try:
            length = GameLength(data.get("length", GameLength.MEDIUM.value))
        except ValueError:
            length = GameLength.MEDIUM
        created_at = data.get("created_at")
        return cls(
            theme=sanitize_theme(str(data.get("theme", ""))),
            difficulty=difficulty,
            length=length,
            adult_mode=bool(data.get("adult_mode", False)),
            created_at=float(created_at) if isinstance(created_at, (int, float)) else time.time(),
        )
