"""Death debrief data: what killed the player and what they missed.

The narrative engine feeds a ``DebriefCollector`` while a run is in
progress; on death it hands ``collector.snapshot()`` to the debrief screen,
which only ever reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from .game_config import Difficulty

MAX_CHECKPOINTS = 3


class DeathType(str, Enum):
    HP = "hp"
    SAN = "san"
    RULE = "rule"


class ClueStatus(str, Enum):
    MISSED = "missed"
    DISCOVERED = "discovered"

    @property
    def label(self) -> str:
        return "已發現" if self is ClueStatus.DISCOVERED else "錯過"


@dataclass(frozen=True, slots=True)
class DeathInfo:
    death_type: DeathType
    chapter: int = 0
    final_hp: int = 0
    final_san: int = 0
    triggering_rule_id: str = ""
    last_action: str = ""
    location: str = ""
    narrative: str = ""


@dataclass(frozen=True, slots=True)
class RuleReveal:
    rule_id: str
    rule_type: str
    trigger_condition: str
    consequence_type: str
    consequence_detail: str = ""
    discovered_clues: tuple[str, ...] = ()
    missed_clues: tuple[str, ...] = ()
    explanation: str = ""
    violation_count: int = 0


@dataclass(frozen=True, slots=True)
class ClueInfo:
    clue_id: str
    content: str
    chapter: int = 0
    location: str = ""
    rule_id: str = ""
    status: ClueStatus = ClueStatus.MISSED
    context: str = ""

    @property
    def discovered(self) -> bool:
        return self.status is ClueStatus.DISCOVERED


@dataclass(frozen=True, slots=True)
class DecisionPoint:
    chapter: int
    options: tuple[str, ...]
    selected_index: int
    is_significant: bool = False
    consequence: str = ""
    is_hallucination: bool = False

    @property
    def selected_text(self) -> str:
        if 0 <= self.selected_index < len(self.options):
            return self.options[self.selected_index]
        return ""


@dataclass(frozen=True, slots=True)
class HallucinationLog:
    option_text: str
    san_value: int
    chapter: int
    consequence: str = ""
    real_option: str = ""


@dataclass(frozen=True, slots=True)
class CheckpointInfo:
    checkpoint_id: str
    chapter: int
    hp: int
    san: int
    description: str = ""


@dataclass(frozen=True, slots=True)
class DebriefReport:
    death: DeathInfo | None = None
    triggered_rules: tuple[RuleReveal, ...] = ()
    clues: tuple[ClueInfo, ...] = ()
    hallucinations: tuple[HallucinationLog, ...] = ()
    decisions: tuple[DecisionPoint, ...] = ()
    checkpoints: tuple[CheckpointInfo, ...] = ()
    difficulty: Difficulty = Difficulty.HARD

    def missed_clues(self) -> tuple[ClueInfo, ...]:
        return tuple(c for c in self.clues if not c.discovered)

    def discovered_clues(self) -> tuple[ClueInfo, ...]:
        return tuple(c for c in self.clues if c.discovered)

    def clues_for_rule(self, rule_id: str) -> tuple[ClueInfo, ...]:
        return tuple(c for c in self.clues if c.rule_id == rule_id)

    def significant_decisions(self) -> tuple[DecisionPoint, ...]:
        return tuple(d for d in self.decisions if d.is_significant)

    def latest_checkpoint(self) -> CheckpointInfo | None:
        return self.checkpoints[-1] if self.checkpoints else None

    def can_rollback(self) -> bool:
        return self.difficulty.allows_rollback and len(self.checkpoints) > 0

    def death_summary(self) -> str:
        if self.death is None:
            return "死因不明"
        if self.death.death_type is DeathType.HP:
            return "你的體力完全耗盡，無法再繼續前進。"
        if self.death.death_type is DeathType.SAN:
            return "你的理智崩潰了，被恐懼和瘋狂吞噬。"
        if self.triggered_rules:
            return f"你違反了隱藏的規則：「{self.triggered_rules[0].trigger_condition}」"
        return "你違反了隱藏的規則而遭受懲罰。"


@dataclass(slots=True)
class DebriefCollector:
    """Mutable builder used by the narrative engine during a run."""

    difficulty: Difficulty = Difficulty.HARD
    _death: DeathInfo | None = None
    _rules: list[RuleReveal] = field(default_factory=list)
    _clues: list[ClueInfo] = field(default_factory=list)
    _hallucinations: list[HallucinationLog] = field(default_factory=list)
    _decisions: list[DecisionPoint] = field(default_factory=list)
    _checkpoints: list[CheckpointInfo] = field(default_factory=list)

    def record_death(self, info: DeathInfo) -> None:
        self._death = info

    def record_rule_violation(self, reveal: RuleReveal) -> None:
        self._rules.append(reveal)

    def record_clue(self, clue: ClueInfo) -> None:
        self._clues.append(clue)

    def record_clue_discovered(self, clue_id: str) -> bool:
        for idx, clue in enumerate(self._clues):
            if clue.clue_id == clue_id:
                self._clues[idx] = replace(clue, status=ClueStatus.DISCOVERED)
                return True
        return False

    def record_hallucination(self, log: HallucinationLog) -> None:
        self._hallucinations.append(log)

    def record_decision(self, decision: DecisionPoint) -> None:
        self._decisions.append(decision)

    def record_checkpoint(self, checkpoint: CheckpointInfo) -> None:
        self._checkpoints.append(checkpoint)
        # Only the most recent checkpoints are kept for rollback.
        del self._checkpoints[:-MAX_CHECKPOINTS]

    def reset(self) -> None:
        self._death = None
        self._rules.clear()
        self._clues.clear()
        self._hallucinations.clear()
        self._decisions.clear()
        self._checkpoints.clear()

    def snapshot(self) -> DebriefReport:
        return DebriefReport(
            death=self._death,
            triggered_rules=tuple(self._rules),
            clues=tuple(self._clues),
            hallucinations=tuple(self._hallucinations),
            decisions=tuple(self._decisions),
            checkpoints=tuple(self._checkpoints),
            difficulty=self.difficulty,
        )
