"""Menu controllers: main menu, settings menu and theme selector.

Navigation rules shared by every menu:

- up/down (or k/j) move one step, skipping disabled items in the same
  direction and wrapping around the list at most once;
- digit keys pick the n-th visible item directly (ignored when disabled);
- an item flagged ``confirm_exit`` raises a yes/no prompt that swallows all
  input until answered.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .keys import CONFIRM_KEYS, DOWN_KEYS, UP_KEYS, KeyPress, digit_of
from .messages import NO_EFFECTS, Effects, Emit, MenuSelected, Quit, ThemeBack, ThemeSelected
from .themes import ThemeRegistry


class MainMenuAction(str, Enum):
    NEW_GAME = "new_game"
    CONTINUE = "continue"
    SETTINGS = "settings"
    EXIT = "exit"


class SettingsAction(str, Enum):
    THEME = "theme"
    API = "api"
    AUDIO = "audio"
    BACK = "back"


@dataclass(frozen=True, slots=True)
class MenuItem:
    title: str
    action: Any
    description: str = ""
    enabled: bool = True
    confirm_exit: bool = False


def filter_indices(labels: Sequence[str], query: str) -> tuple[int, ...]:
    """Indices of ``labels`` containing ``query`` (case-insensitive)."""
    needle = query.strip().casefold()
    if needle == "":
        return tuple(range(len(labels)))
    return tuple(i for i, label in enumerate(labels) if needle in label.casefold())


def step_selection(enabled: Sequence[bool], candidates: Sequence[int], selected: int, delta: int) -> int:
    """Move one step from ``selected`` over ``candidates``, skipping disabled entries.

    Wraps around at most once; returns ``selected`` unchanged when no
    candidate is enabled.
    """
    usable = [i for i in candidates if enabled[i]]
    if not usable:
        return selected
    if selected not in candidates:
        return usable[0] if delta > 0 else usable[-1]
    pos = list(candidates).index(selected)
    n = len(candidates)
    for step in range(1, n + 1):
        idx = candidates[(pos + delta * step) % n]
        if enabled[idx]:
            return idx
    return selected


@dataclass(frozen=True, slots=True)
class MenuController:
    title: str
    items: tuple[MenuItem, ...]
    selected: int = 0
    confirming_exit: bool = False
    back_action: Any = None
    quit_key: str | None = None
    filterable: bool = False
    filter_text: str = ""
    filtering: bool = False

    def __post_init__(self) -> None:
        if self.items and not (0 <= self.selected < len(self.items)):
            raise ValueError("selected must index an item")

    @property
    def visible_indices(self) -> tuple[int, ...]:
        if not self.filterable:
            return tuple(range(len(self.items)))
        return filter_indices([f"{item.title} {item.description}" for item in self.items], self.filter_text)

    @property
    def selected_item(self) -> MenuItem | None:
        if 0 <= self.selected < len(self.items) and self.selected in self.visible_indices:
            return self.items[self.selected]
        return None

    def update(self, event: object) -> tuple["MenuController", Effects]:
        if not isinstance(event, KeyPress):
            return self, NO_EFFECTS
        if self.confirming_exit:
            return self._update_confirm(event)
        if self.filtering:
            return self._update_filter(event)

        key = event.key
        if key in UP_KEYS:
            return self._moved(-1), NO_EFFECTS
        if key in DOWN_KEYS:
            return self._moved(1), NO_EFFECTS
        if key in CONFIRM_KEYS:
            return self._activate()
        if key == "/" and self.filterable:
            return replace(self, filtering=True), NO_EFFECTS

        number = digit_of(key)
        if number is not None:
            visible = self.visible_indices
            if number > len(visible) or not self.items[visible[number - 1]].enabled:
                return self, NO_EFFECTS
            return replace(self, selected=visible[number - 1])._activate()

        if key in ("esc", "backspace"):
            if self.filter_text:
                return self._with_filter(""), NO_EFFECTS
            if self.back_action is not None:
                return self._back()
            return self, NO_EFFECTS
        if self.quit_key is not None and key == self.quit_key:
            return self, (Quit(),)
        return self, NO_EFFECTS

    def _moved(self, delta: int) -> "MenuController":
        enabled = [item.enabled for item in self.items]
        return replace(self, selected=step_selection(enabled, self.visible_indices, self.selected, delta))

    def _activate(self) -> tuple["MenuController", Effects]:
        item = self.selected_item
        if item is None or not item.enabled:
            return self, NO_EFFECTS
        if item.confirm_exit:
            return replace(self, confirming_exit=True), NO_EFFECTS
        return self, (Emit(MenuSelected(item.action)),)

    def _back(self) -> tuple["MenuController", Effects]:
        return self, (Emit(MenuSelected(self.back_action)),)

    def _update_confirm(self, event: KeyPress) -> tuple["MenuController", Effects]:
        if event.key in ("y", "Y"):
            return self, (Quit(),)
        if event.key in ("n", "N", "esc"):
            return replace(self, confirming_exit=False), NO_EFFECTS
        return self, NO_EFFECTS

    def _update_filter(self, event: KeyPress) -> tuple["MenuController", Effects]:
        if event.key == "esc":
            return replace(self._with_filter(""), filtering=False), NO_EFFECTS
        if event.key == "enter":
            return replace(self, filtering=False), NO_EFFECTS
        if event.key == "backspace":
            return self._with_filter(self.filter_text[:-1]), NO_EFFECTS
        if event.key in ("up", "down"):
            return self._moved(-1 if event.key == "up" else 1), NO_EFFECTS
        if event.is_printable:
            return self._with_filter(self.filter_text + event.text), NO_EFFECTS
        return self, NO_EFFECTS

    def _with_filter(self, text: str) -> "MenuController":
        narrowed = replace(self, filter_text=text)
        visible = narrowed.visible_indices
        if narrowed.selected in visible and self.items[narrowed.selected].enabled:
            return narrowed
        usable = [i for i in visible if self.items[i].enabled]
        if not usable:
            return narrowed
        return replace(narrowed, selected=usable[0])


@dataclass(frozen=True, slots=True)
class ThemeSelectorController(MenuController):
    """Menu over the theme catalogue that switches the palette on selection."""

    registry: ThemeRegistry | None = field(default=None, compare=False)

    def _activate(self) -> tuple["MenuController", Effects]:
        item = self.selected_item
        if item is None or self.registry is None:
            return self, NO_EFFECTS
        # The palette switches before ThemeSelected is emitted.
        self.registry.set_current(item.action)
        return self, (Emit(ThemeSelected(item.action)),)

    def _back(self) -> tuple["MenuController", Effects]:
        return self, (Emit(ThemeBack()),)


def build_main_menu(*, has_save_files: bool) -> MenuController:
    items = (
        MenuItem("新遊戲", MainMenuAction.NEW_GAME, "開始一場新的惡夢冒險"),
        MenuItem("繼續遊戲", MainMenuAction.CONTINUE, "載入上次的存檔", enabled=has_save_files),
        MenuItem("設定", MainMenuAction.SETTINGS, "調整遊戲設定"),
        MenuItem("離開", MainMenuAction.EXIT, "退出遊戲", confirm_exit=True),
    )
    return MenuController(title="Nightmare Assault", items=items, quit_key="q")


def build_settings_menu() -> MenuController:
    items = (
        MenuItem("主題", SettingsAction.THEME, "切換界面主題"),
        MenuItem("API 設定", SettingsAction.API, "管理 API 供應商"),
        MenuItem("音效設定", SettingsAction.AUDIO, "調整音量與音效"),
        MenuItem("返回", SettingsAction.BACK, "返回主選單"),
    )
    return MenuController(title="設定", items=items, back_action=SettingsAction.BACK, quit_key="q")


def build_theme_selector(registry: ThemeRegistry) -> ThemeSelectorController:
    items = tuple(MenuItem(t.name, t.theme_id, t.description) for t in registry.all())
    selected = max(0, registry.index_of(registry.current().theme_id))
    return ThemeSelectorController(
        title="選擇主題",
        items=items,
        selected=selected,
        back_action=SettingsAction.BACK,
        quit_key="q",
        registry=registry,
    )
