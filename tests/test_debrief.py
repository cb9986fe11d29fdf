from __future__ import annotations

from nightmare_assault.debrief import (
    SCROLL_STEP,
    DebriefAction,
    DebriefController,
    Section,
    build_options,
    estimate_content_height,
)
from nightmare_assault.game_config import Difficulty
from nightmare_assault.keys import KeyPress
from nightmare_assault.messages import DebriefSelected, Emit, Resize
from nightmare_assault.report import (
    CheckpointInfo,
    ClueInfo,
    ClueStatus,
    DebriefCollector,
    DeathInfo,
    DeathType,
    DecisionPoint,
    RuleReveal,
)


def make_report(*, difficulty: Difficulty = Difficulty.HARD, checkpoints: int = 0):
    collector = DebriefCollector(difficulty=difficulty)
    collector.record_death(DeathInfo(DeathType.RULE, chapter=2, triggering_rule_id="r1"))
    collector.record_rule_violation(RuleReveal("r1", "taboo", "不要回頭", "death"))
    collector.record_rule_violation(RuleReveal("r2", "time", "午夜前離開", "san"))
    for i in range(3):
        collector.record_clue(ClueInfo(f"c{i}", f"線索 {i}", rule_id="r1"))
    collector.record_clue(ClueInfo("c9", "已找到", status=ClueStatus.DISCOVERED))
    collector.record_decision(DecisionPoint(1, ("開門", "離開"), 0, is_significant=True))
    collector.record_decision(DecisionPoint(1, ("看", "不看"), 1))
    for i in range(checkpoints):
        collector.record_checkpoint(CheckpointInfo(f"cp{i}", i, 100, 100))
    return collector.snapshot()


def press(ctl: DebriefController, *keys: str):
    effects = ()
    for key in keys:
        event = KeyPress.char(key) if len(key) == 1 else KeyPress(key)
        ctl, effects = ctl.update(event)
    return ctl, effects


# ---------------------------------------------------------------------------
# Report data
# ---------------------------------------------------------------------------


def test_collector_keeps_only_recent_checkpoints() -> None:
    report = make_report(checkpoints=5)
    assert [c.checkpoint_id for c in report.checkpoints] == ["cp2", "cp3", "cp4"]
    assert report.latest_checkpoint().checkpoint_id == "cp4"


def test_collector_marks_clues_discovered_and_resets() -> None:
    collector = DebriefCollector()
    collector.record_clue(ClueInfo("c1", "x"))
    assert collector.record_clue_discovered("c1") is True
    assert collector.record_clue_discovered("zz") is False
    assert collector.snapshot().clues[0].discovered

    collector.reset()
    assert collector.snapshot().clues == ()


def test_report_queries() -> None:
    report = make_report()
    assert len(report.missed_clues()) == 3
    assert len(report.discovered_clues()) == 1
    assert len(report.clues_for_rule("r1")) == 3
    assert len(report.significant_decisions()) == 1
    assert report.decisions[1].selected_text == "不看"
    assert "不要回頭" in report.death_summary()


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


def test_options_without_rollback() -> None:
    assert build_options(make_report(difficulty=Difficulty.EASY)) == (DebriefAction.NEW_GAME, DebriefAction.MENU)
    assert build_options(make_report(difficulty=Difficulty.HARD, checkpoints=1)) == (
        DebriefAction.NEW_GAME,
        DebriefAction.MENU,
    )


def test_easy_with_checkpoint_offers_rollback_first() -> None:
    options = build_options(make_report(difficulty=Difficulty.EASY, checkpoints=1))
    assert options == (DebriefAction.ROLLBACK, DebriefAction.NEW_GAME, DebriefAction.MENU)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_up_down_move_between_sections_without_wrapping() -> None:
    ctl = DebriefController.create(make_report())
    assert ctl.section is Section.SUMMARY
    ctl, _ = press(ctl, "up")
    assert ctl.section is Section.SUMMARY
    ctl, _ = press(ctl, "down", "down", "down", "down")
    assert ctl.section is Section.OPTIONS
    ctl, _ = press(ctl, "down", "down", "down")
    assert ctl.selected_option == len(ctl.options) - 1


def test_up_from_first_option_returns_to_decisions() -> None:
    ctl = DebriefController.create(make_report())
    ctl, _ = press(ctl, "shift+tab")
    assert ctl.section is Section.OPTIONS
    assert ctl.selected_option == 0
    ctl, _ = press(ctl, "up")
    assert ctl.section is Section.DECISIONS


def test_tab_wraps_around() -> None:
    ctl = DebriefController.create(make_report())
    ctl, _ = press(ctl, "tab", "tab", "tab", "tab", "tab")
    assert ctl.section is Section.SUMMARY


def test_toggle_twice_is_identity() -> None:
    ctl = DebriefController.create(make_report())
    assert ctl.toggle_rule(1).toggle_rule(1) == ctl
    assert ctl.toggle_clue(0).toggle_clue(0) == ctl
    assert ctl.toggle_rule(7) is ctl


def test_enter_toggles_focused_item() -> None:
    ctl = DebriefController.create(make_report())
    ctl, _ = press(ctl, "tab", "l", "enter")
    assert ctl.section is Section.RULES
    assert ctl.expanded_rules == frozenset({1})
    ctl, _ = press(ctl, "right")
    assert ctl.item == 1

    ctl, _ = press(ctl, "tab", "enter")
    assert ctl.section is Section.CLUES
    assert ctl.item == 0
    assert ctl.expanded_clues == frozenset({0})


def test_expand_and_collapse_all_affect_focused_section_only() -> None:
    ctl = DebriefController.create(make_report())
    ctl, _ = press(ctl, "tab", "tab", "e")
    assert ctl.expanded_clues == frozenset({0, 1, 2})
    assert ctl.expanded_rules == frozenset()

    ctl, _ = press(ctl, "shift+tab", "e")
    assert ctl.expanded_rules == frozenset({0, 1})
    ctl, _ = press(ctl, "c")
    assert ctl.expanded_rules == frozenset()
    assert ctl.expanded_clues == frozenset({0, 1, 2})

    summary, _ = press(ctl, "shift+tab", "e")
    assert summary.expanded_rules == frozenset()


def test_selecting_an_option_emits_it() -> None:
    ctl = DebriefController.create(make_report(difficulty=Difficulty.EASY, checkpoints=1))
    ctl, effects = press(ctl, "shift+tab", "enter")
    assert effects == (Emit(DebriefSelected(DebriefAction.ROLLBACK)),)
    _, effects = press(ctl, "down", "enter")
    assert effects == (Emit(DebriefSelected(DebriefAction.NEW_GAME)),)


def test_q_returns_to_menu() -> None:
    _, effects = press(DebriefController.create(make_report()), "q")
    assert effects == (Emit(DebriefSelected(DebriefAction.MENU)),)


# ---------------------------------------------------------------------------
# Scrolling
# ---------------------------------------------------------------------------


def test_scroll_clamps_to_content() -> None:
    report = make_report()
    assert estimate_content_height(report) == 10 + 8 * 2 + 4 * 3 + 3 * 1
    ctl = DebriefController.create(report, width=80, height=24)
    assert ctl.max_scroll == 41 - 18

    ctl, _ = press(ctl, "pgdown")
    assert ctl.scroll == SCROLL_STEP
    ctl, _ = press(ctl, *(["pgdown"] * 10))
    assert ctl.scroll == ctl.max_scroll
    ctl, _ = press(ctl, *(["pgup"] * 10))
    assert ctl.scroll == 0


def test_resize_reclamps_scroll() -> None:
    ctl = DebriefController.create(make_report(), width=80, height=24)
    ctl, _ = press(ctl, *(["pgdown"] * 10))
    ctl, _ = ctl.update(Resize(120, 60))
    assert ctl.max_scroll == 0
    assert ctl.scroll == 0


def test_with_report_rebuilds_options_and_state() -> None:
    ctl = DebriefController.create(make_report())
    ctl, _ = press(ctl, "tab", "e", "pgdown")
    updated = ctl.with_report(make_report(difficulty=Difficulty.EASY, checkpoints=2))
    assert updated.options[0] is DebriefAction.ROLLBACK
    assert updated.expanded_rules == frozenset()
    assert updated.selected_option == 0
    assert updated.scroll <= updated.max_scroll
