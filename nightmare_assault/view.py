"""Text frames for the terminal grid.

Pure functions from a session snapshot to coloured lines. The pygame shell
draws whatever comes out; nothing here feeds back into the controllers.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from .death import OPTIONS as DEATH_OPTIONS
from .death import DeathController
from .debrief import CHROME_ROWS, DebriefController, Section
from .menu import MenuController, ThemeSelectorController
from .root import MIN_HEIGHT, MIN_WIDTH, Mode, Session
from .story_loading import StoryLoadingController
from .themes import RGB, Theme, ThemeRegistry
from .wizard import AsyncStep, ChoiceStep, SummaryStep, TextStep, WizardController

GLITCH_CHARS = "█▓░▒▀▄■"
PARTIAL_GLITCH_CHARS = "█▓░?!#@"
SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
TITLE_GLITCH_CHANCE = 0.3
NARRATIVE_GLITCH_CHANCE = 0.1


@dataclass(frozen=True, slots=True)
class Span:
    text: str
    color: RGB


Line = tuple[Span, ...]


@dataclass(frozen=True, slots=True)
class Frame:
    lines: tuple[Line, ...]
    background: RGB
    offset_x: int = 0

    def plain_text(self) -> str:
        return "\n".join("".join(span.text for span in line) for line in self.lines)


def glitch_text(text: str, rng: random.Random, chance: float = TITLE_GLITCH_CHANCE) -> str:
    return "".join(rng.choice(GLITCH_CHARS) if rng.random() < chance else ch for ch in text)


def partial_glitch(text: str, rng: random.Random, chance: float = NARRATIVE_GLITCH_CHANCE) -> str:
    out = []
    for ch in text:
        if ch not in (" ", "\n") and rng.random() < chance:
            out.append(rng.choice(PARTIAL_GLITCH_CHARS))
        else:
            out.append(ch)
    return "".join(out)


class _Lines:
    """Small line builder bound to one theme."""

    def __init__(self, theme: Theme) -> None:
        self.theme = theme
        self.rows: list[Line] = []

    def add(self, text: str = "", color: RGB | None = None) -> None:
        self.rows.append((Span(text, color or self.theme.colors.primary),))

    def spans(self, *spans: Span) -> None:
        self.rows.append(tuple(spans))

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self.add()


def render(session: Session, registry: ThemeRegistry) -> Frame:
    theme = registry.current()
    out = _Lines(theme)
    offset = 0
    ctl = session.controller

    if not session.size_ok:
        _size_warning(out, session)
    elif not session.ready or ctl is None:
        out.blank(2)
        out.add("  Nightmare Assault", theme.colors.accent)
        out.add("  載入中...", theme.colors.secondary)
    elif isinstance(ctl, ThemeSelectorController):
        _theme_selector(out, ctl, registry)
    elif isinstance(ctl, MenuController):
        _menu(out, ctl, root=session.mode is Mode.MAIN_MENU)
    elif isinstance(ctl, WizardController):
        _wizard(out, ctl)
    elif isinstance(ctl, StoryLoadingController):
        _story_loading(out, ctl)
    elif isinstance(ctl, DeathController):
        _death(out, ctl)
        offset = ctl.glitch_offset if ctl.sanity_collapse and not ctl.transitioning else 0
    elif isinstance(ctl, DebriefController):
        _debrief(out, ctl)

    return Frame(lines=tuple(out.rows), background=theme.colors.background, offset_x=offset)


def _size_warning(out: _Lines, session: Session) -> None:
    c = out.theme.colors
    out.blank()
    out.add("⚠ 終端機視窗太小", c.warning)
    out.add(f"目前：{session.width}x{session.height}", c.secondary)
    out.add(f"需要：至少 {MIN_WIDTH}x{MIN_HEIGHT}", c.secondary)
    out.add("請調整視窗大小", c.secondary)


def _menu(out: _Lines, ctl: MenuController, *, root: bool) -> None:
    c = out.theme.colors
    out.blank()
    out.add(f"  {ctl.title}", c.accent)
    out.blank()
    if ctl.confirming_exit:
        out.add("  確定要離開嗎？", c.warning)
        out.blank()
        out.add("  (y) 是  (n) 否", c.secondary)
        return
    for number, idx in enumerate(ctl.visible_indices, start=1):
        item = ctl.items[idx]
        prefix = "❯ " if idx == ctl.selected else "  "
        color = c.accent if idx == ctl.selected else (c.primary if item.enabled else c.secondary)
        out.spans(Span(f"  {prefix}{number}. {item.title}", color), Span(f"  {item.description}", c.secondary))
    out.blank()
    if root:
        out.add("  ↑/↓ 或 j/k: 移動  |  Enter: 確認  |  1-4: 直接選擇  |  q: 離開", c.secondary)
    else:
        out.add("  ↑/↓ 或 j/k: 移動  |  Enter: 確認  |  ESC: 返回", c.secondary)


def _theme_selector(out: _Lines, ctl: ThemeSelectorController, registry: ThemeRegistry) -> None:
    c = out.theme.colors
    out.blank()
    out.add(f"  {ctl.title}", c.accent)
    out.blank()
    for number, idx in enumerate(ctl.visible_indices, start=1):
        item = ctl.items[idx]
        prefix = "❯ " if idx == ctl.selected else "  "
        mark = " ✓ 使用中" if registry.is_current(item.action) else ""
        out.spans(
            Span(f"  {prefix}{number}. {item.title}", c.accent if idx == ctl.selected else c.primary),
            Span(mark, c.success),
        )
        out.add(f"        {item.description}", c.secondary)
    out.blank()
    out.add("  預覽", c.border)
    out.add("  主要文字", c.primary)
    out.add("  次要文字", c.secondary)
    out.add("  強調文字", c.accent)
    out.spans(Span("  ✓ 成功訊息  ", c.success), Span("✗ 錯誤訊息  ", c.error), Span("⚠ 警告訊息", c.warning))
    out.blank()
    out.add("  ↑/↓ 或 j/k: 移動  |  Enter: 套用  |  ESC: 返回", c.secondary)


def _wizard(out: _Lines, ctl: WizardController) -> None:
    c = out.theme.colors
    step = ctl.step
    marks = []
    for i in range(len(ctl.steps)):
        marks.append("✓" if i < ctl.index else "●" if i == ctl.index else "○")
    out.blank()
    out.add(f"  {' → '.join(marks)}", c.border)
    out.blank()
    out.add(f"  {step.title}", c.accent)
    out.blank()

    if isinstance(step, TextStep):
        if step.hint:
            out.add(f"  {step.hint}", c.secondary)
            out.blank()
        out.add(f"  > {ctl.display_text}_", c.primary)
    elif isinstance(step, ChoiceStep):
        if step.filterable:
            cursor = "_" if ctl.filtering else ""
            out.add(f"  搜尋: {ctl.filter_text}{cursor}", c.secondary)
            out.blank()
        for number, idx in enumerate(ctl.visible_choices, start=1):
            choice = step.choices[idx]
            selected = idx == ctl.cursor
            out.spans(
                Span(f"  {'❯ ' if selected else '  '}{number}. {choice.label}", c.accent if selected else c.primary),
                Span(f"  {choice.description}", c.secondary),
            )
        if step.hint:
            out.blank()
            out.add(f"  {step.hint}", c.secondary)
    elif isinstance(step, AsyncStep):
        spin = SPINNER[ctl.waited_ticks % len(SPINNER)]
        out.add(f"  {spin} 請稍候... ({ctl.waited_ticks / 10:.1f} 秒)", c.primary)
    elif isinstance(step, SummaryStep):
        for label, value in step.lines(ctl.draft):
            out.spans(Span(f"  {label}：", c.secondary), Span(value, c.primary))
        out.blank()
        for idx, label in enumerate((step.confirm_label, step.edit_label)):
            selected = idx == ctl.cursor
            out.add(f"  {'❯ ' if selected else '  '}{label}", c.accent if selected else c.primary)

    if ctl.error:
        out.blank()
        out.add(f"  ⚠ {ctl.error}", c.error)
    out.blank()
    out.add("  Enter: 確認  |  ESC: 返回", c.secondary)


def _story_loading(out: _Lines, ctl: StoryLoadingController) -> None:
    c = out.theme.colors
    out.blank(2)
    out.add("  🌙 Nightmare Assault", c.accent)
    out.blank()
    out.add(f"  主題：{ctl.config.theme}", c.secondary)
    out.blank()
    out.add(f"  {SPINNER[ctl.ticks % len(SPINNER)]} {ctl.flavor_text}", c.primary)
    if ctl.slow:
        out.blank()
        out.add("  ⚠ 連接較慢，請稍候...", c.warning)
        out.add(f"  已等待 {ctl.elapsed_s:.0f} 秒", c.secondary)
    out.blank()
    out.add("  ESC: 返回主選單", c.secondary)


def _death(out: _Lines, ctl: DeathController) -> None:
    c = out.theme.colors
    if ctl.transitioning:
        out.blank(8)
        out.add(f"  {ctl.transition_text}", c.secondary)
        return

    title = ctl.title
    narrative = ctl.death.narrative
    if ctl.wants_glyph_noise:
        rng = random.Random(ctl.seed + ctl.glitch_ticks)
        title = glitch_text(title, rng)
        narrative = partial_glitch(narrative, rng)

    out.blank(2)
    out.add(f"  {title}", c.error)
    out.blank()
    for row in narrative.splitlines() or [""]:
        out.add(f"  {row}", c.primary)
    out.blank()
    for idx, (label, _) in enumerate(DEATH_OPTIONS):
        selected = idx == ctl.selected
        out.add(f"  {'> ' if selected else '  '}{label}", c.accent if selected else c.secondary)


def _debrief(out: _Lines, ctl: DebriefController) -> None:
    c = out.theme.colors
    report = ctl.report
    body = _Lines(out.theme)

    def header(section: Section, text: str) -> None:
        focused = ctl.section is section
        body.add(f"{'▶ ' if focused else '  '}{text}", c.accent if focused else c.primary)

    header(Section.SUMMARY, "【死因摘要】")
    body.add(f"    {report.death_summary()}", c.primary)
    if report.death is not None:
        d = report.death
        body.add(f"    章節：{d.chapter}  HP：{d.final_hp}  SAN：{d.final_san}", c.secondary)
    body.blank()

    header(Section.RULES, "【觸發的規則】")
    if not report.triggered_rules:
        body.add("    （沒有觸發任何規則）", c.secondary)
    for i, rule in enumerate(report.triggered_rules):
        expanded = i in ctl.expanded_rules
        focus = ctl.section is Section.RULES and ctl.item == i
        body.add(
            f"  {'›' if focus else ' '} {'▾' if expanded else '▸'} [{i + 1}] {rule.rule_type}：{rule.trigger_condition}",
            c.accent if focus else c.primary,
        )
        if expanded:
            body.add(f"        後果：{rule.consequence_type}", c.secondary)
            for clue in rule.discovered_clues:
                body.add(f"        ✓ {clue}", c.success)
            for clue in rule.missed_clues:
                body.add(f"        ✗ {clue}", c.error)
            if rule.explanation:
                body.add(f"        💡 {rule.explanation}", c.secondary)
    body.blank()

    header(Section.CLUES, "【錯過的線索】")
    missed = report.missed_clues()
    if not missed:
        body.add("    （沒有錯過任何線索）", c.secondary)
    for i, clue in enumerate(missed):
        expanded = i in ctl.expanded_clues
        focus = ctl.section is Section.CLUES and ctl.item == i
        body.add(
            f"  {'›' if focus else ' '} {'▾' if expanded else '▸'} [第{clue.chapter}章] {clue.content}",
            c.accent if focus else c.primary,
        )
        if expanded and clue.context:
            body.add(f"        上下文：{clue.context}", c.secondary)
    body.blank()

    header(Section.DECISIONS, "【關鍵決策點】")
    significant = report.significant_decisions()
    if not significant:
        body.add("    （沒有重大決策記錄）", c.secondary)
    for decision in significant:
        body.add(f"    • [第{decision.chapter}章] 選擇了「{decision.selected_text}」", c.primary)
        if decision.is_hallucination:
            body.add("      ⚠ 這是一個幻覺選項", c.warning)
        if decision.consequence:
            body.add(f"      → {decision.consequence}", c.secondary)
    if report.hallucinations:
        body.add(f"  共選擇了 {len(report.hallucinations)} 個幻覺選項", c.warning)
    body.blank()

    header(Section.OPTIONS, "【接下來】")
    for i, action in enumerate(ctl.options):
        selected = ctl.section is Section.OPTIONS and i == ctl.selected_option
        body.add(f"    {'❯ ' if selected else '  '}{action.label}", c.accent if selected else c.primary)

    view_height = max(1, ctl.height - CHROME_ROWS)
    out.add("  ═══ 死亡覆盤 ═══", c.accent)
    out.blank()
    out.rows.extend(body.rows[ctl.scroll:ctl.scroll + view_height])
    out.blank()
    out.add("  Tab: 切換區塊  |  Enter: 展開/選擇  |  e/c: 全部展開/收合  |  PgUp/PgDn: 捲動  |  q: 返回", c.secondary)
