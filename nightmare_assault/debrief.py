"""Debrief browser shown after death.

Five sections in fixed order. up/down and tab/shift+tab move the section
focus; left/right (or h/l) move the focused item inside the rules and clues
sections, where enter toggles that item's expansion. ``e``/``c`` expand or
collapse every item of the focused section only.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .keys import DOWN_KEYS, UP_KEYS, KeyPress
from .messages import NO_EFFECTS, DebriefSelected, Effects, Emit, Resize
from .report import DebriefReport

SCROLL_STEP = 5
CHROME_ROWS = 6


class Section(str, Enum):
    SUMMARY = "summary"
    RULES = "rules"
    CLUES = "clues"
    DECISIONS = "decisions"
    OPTIONS = "options"


SECTION_ORDER: tuple[Section, ...] = tuple(Section)


class DebriefAction(str, Enum):
    ROLLBACK = "rollback"
    NEW_GAME = "new_game"
    MENU = "menu"

    @property
    def label(self) -> str:
        return {
            DebriefAction.ROLLBACK: "回到最近的檢查點",
            DebriefAction.NEW_GAME: "開始新遊戲",
            DebriefAction.MENU: "返回主選單",
        }[self]


def build_options(report: DebriefReport) -> tuple[DebriefAction, ...]:
    options: list[DebriefAction] = []
    if report.can_rollback():
        options.append(DebriefAction.ROLLBACK)
    options.extend((DebriefAction.NEW_GAME, DebriefAction.MENU))
    return tuple(options)


def estimate_content_height(report: DebriefReport) -> int:
    return (
        10
        + 8 * len(report.triggered_rules)
        + 4 * len(report.missed_clues())
        + 3 * len(report.significant_decisions())
        + (1 if report.hallucinations else 0)
    )


def _toggled(expanded: frozenset[int], index: int) -> frozenset[int]:
    return expanded - {index} if index in expanded else expanded | {index}


@dataclass(frozen=True, slots=True)
class DebriefController:
    report: DebriefReport
    options: tuple[DebriefAction, ...]
    width: int = 80
    height: int = 24
    section: Section = Section.SUMMARY
    item: int = 0
    expanded_rules: frozenset[int] = frozenset()
    expanded_clues: frozenset[int] = frozenset()
    selected_option: int = 0
    scroll: int = 0

    @classmethod
    def create(cls, report: DebriefReport, *, width: int = 80, height: int = 24) -> "DebriefController":
        return cls(report=report, options=build_options(report), width=width, height=height)

    @property
    def max_scroll(self) -> int:
        view_height = self.height - CHROME_ROWS
        return max(0, estimate_content_height(self.report) - view_height)

    def _section_size(self, section: Section) -> int:
        if section is Section.RULES:
            return len(self.report.triggered_rules)
        if section is Section.CLUES:
            return len(self.report.missed_clues())
        return 0

    def with_report(self, report: DebriefReport) -> "DebriefController":
        """Swap the underlying data; options and per-item state are rebuilt."""
        updated = replace(
            self,
            report=report,
            options=build_options(report),
            selected_option=0,
            item=0,
            expanded_rules=frozenset(),
            expanded_clues=frozenset(),
        )
        return replace(updated, scroll=min(updated.scroll, updated.max_scroll))

    def resized(self, width: int, height: int) -> "DebriefController":
        updated = replace(self, width=width, height=height)
        return replace(updated, scroll=min(updated.scroll, updated.max_scroll))

    def toggle_rule(self, index: int) -> "DebriefController":
        if not (0 <= index < len(self.report.triggered_rules)):
            return self
        return replace(self, expanded_rules=_toggled(self.expanded_rules, index))

    def toggle_clue(self, index: int) -> "DebriefController":
        if not (0 <= index < len(self.report.missed_clues())):
            return self
        return replace(self, expanded_clues=_toggled(self.expanded_clues, index))

    def _focus(self, section: Section) -> "DebriefController":
        selected = 0 if section is Section.OPTIONS else self.selected_option
        return replace(self, section=section, item=0, selected_option=selected)

    def _step_section(self, delta: int, *, wrap: bool) -> "DebriefController":
        pos = SECTION_ORDER.index(self.section) + delta
        if wrap:
            pos %= len(SECTION_ORDER)
        elif not (0 <= pos < len(SECTION_ORDER)):
            return self
        return self._focus(SECTION_ORDER[pos])

    def update(self, event: object) -> tuple["DebriefController", Effects]:
        if isinstance(event, Resize):
            return self.resized(event.width, event.height), NO_EFFECTS
        if not isinstance(event, KeyPress):
            return self, NO_EFFECTS

        key = event.key
        if key in UP_KEYS:
            if self.section is Section.OPTIONS and self.selected_option > 0:
                return replace(self, selected_option=self.selected_option - 1), NO_EFFECTS
            return self._step_section(-1, wrap=False), NO_EFFECTS
        if key in DOWN_KEYS:
            if self.section is Section.OPTIONS:
                last = len(self.options) - 1
                return replace(self, selected_option=min(last, self.selected_option + 1)), NO_EFFECTS
            return self._step_section(1, wrap=False), NO_EFFECTS
        if key == "tab":
            return self._step_section(1, wrap=True), NO_EFFECTS
        if key == "shift+tab":
            return self._step_section(-1, wrap=True), NO_EFFECTS
        if key in ("left", "h", "right", "l"):
            size = self._section_size(self.section)
            if size == 0:
                return self, NO_EFFECTS
            delta = -1 if key in ("left", "h") else 1
            return replace(self, item=max(0, min(size - 1, self.item + delta))), NO_EFFECTS
        if key in ("enter", " "):
            if self.section is Section.OPTIONS:
                if 0 <= self.selected_option < len(self.options):
                    return self, (Emit(DebriefSelected(self.options[self.selected_option])),)
                return self, NO_EFFECTS
            if self.section is Section.RULES:
                return self.toggle_rule(self.item), NO_EFFECTS
            if self.section is Section.CLUES:
                return self.toggle_clue(self.item), NO_EFFECTS
            return self, NO_EFFECTS
        if key == "e":
            everything = frozenset(range(self._section_size(self.section)))
            if self.section is Section.RULES:
                return replace(self, expanded_rules=everything), NO_EFFECTS
            if self.section is Section.CLUES:
                return replace(self, expanded_clues=everything), NO_EFFECTS
            return self, NO_EFFECTS
        if key == "c":
            if self.section is Section.RULES:
                return replace(self, expanded_rules=frozenset()), NO_EFFECTS
            if self.section is Section.CLUES:
                return replace(self, expanded_clues=frozenset()), NO_EFFECTS
            return self, NO_EFFECTS
        if key in ("q", "esc"):
            return self, (Emit(DebriefSelected(DebriefAction.MENU)),)
        if key == "pgup":
            return replace(self, scroll=max(0, self.scroll - SCROLL_STEP)), NO_EFFECTS
        if key == "pgdown":
            return replace(self, scroll=min(self.max_scroll, self.scroll + SCROLL_STEP)), NO_EFFECTS
        return self, NO_EFFECTS
