"""Death sequence: a timed fade-in followed by a two-option prompt.

Transition phase: ``TRANSITION_FRAMES`` frames at ``DEATH_FPS``; all input
is ignored and the caption is picked by which third of the animation is
playing. After the last frame the controller settles for good.

Settled phase: the normal variant is static. The sanity-collapse variant
keeps a faster glitch timer running that redraws a jitter offset in
[-1, 1]; whenever the offset is non-zero the renderer corrupts glyphs in
the title and narrative.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import Enum

from .keys import CONFIRM_KEYS, DOWN_KEYS, UP_KEYS, KeyPress
from .messages import NO_EFFECTS, DeathSelected, Effects, Emit, Schedule, Tick, Token
from .report import DeathInfo, DeathType

DEATH_FPS = 30
TRANSITION_FRAMES = 60
FRAME_INTERVAL_S = 1.0 / DEATH_FPS
GLITCH_INTERVAL_S = 0.1

FRAME_TIMER = "death.frame"
GLITCH_TIMER = "death.glitch"

TRANSITION_TEXTS = ("...", "你感覺到...", "一切都結束了...")


class DeathAction(str, Enum):
    DEBRIEF = "debrief"
    MENU = "menu"


OPTIONS: tuple[tuple[str, DeathAction], ...] = (
    ("查看覆盤", DeathAction.DEBRIEF),
    ("返回主選單", DeathAction.MENU),
)


@dataclass(frozen=True, slots=True)
class DeathController:
    death: DeathInfo
    epoch: int = 0
    seed: int = 0
    frame: int = 0
    transitioning: bool = True
    selected: int = 0
    glitch_offset: int = 0
    glitch_ticks: int = 0

    @property
    def token(self) -> Token:
        return (self.epoch, 0)

    @property
    def sanity_collapse(self) -> bool:
        return self.death.death_type is DeathType.SAN

    @property
    def title(self) -> str:
        if self.death.death_type is DeathType.HP:
            return "【體力耗盡】"
        if self.death.death_type is DeathType.RULE:
            return "【違反潛規則】"
        return "【理智崩潰】"

    @property
    def transition_text(self) -> str:
        window = TRANSITION_FRAMES / len(TRANSITION_TEXTS)
        idx = min(len(TRANSITION_TEXTS) - 1, int(self.frame // window))
        return TRANSITION_TEXTS[idx]

    @property
    def wants_glyph_noise(self) -> bool:
        return self.sanity_collapse and not self.transitioning and self.glitch_offset != 0

    def start(self) -> Effects:
        return (Schedule(FRAME_INTERVAL_S, Tick(FRAME_TIMER, self.token)),)

    def tick(self) -> tuple["DeathController", bool]:
        """Advance one timer step; the flag says whether to tick again."""
        if self.transitioning:
            frame = self.frame + 1
            if frame < TRANSITION_FRAMES:
                return replace(self, frame=frame), True
            # Settling stops frame ticks; only the collapse variant keeps a timer.
            return replace(self, frame=frame, transitioning=False), self.sanity_collapse
        if not self.sanity_collapse:
            return self, False
        ticks = self.glitch_ticks + 1
        offset = random.Random(self.seed * 1_000_003 + ticks).randint(-1, 1)
        return replace(self, glitch_ticks=ticks, glitch_offset=offset), True

    def _next_tick(self) -> Effects:
        if self.transitioning:
            return (Schedule(FRAME_INTERVAL_S, Tick(FRAME_TIMER, self.token)),)
        return (Schedule(GLITCH_INTERVAL_S, Tick(GLITCH_TIMER, self.token)),)

    def update(self, event: object) -> tuple["DeathController", Effects]:
        if isinstance(event, Tick):
            if event.token != self.token or event.timer not in (FRAME_TIMER, GLITCH_TIMER):
                return self, NO_EFFECTS
            if event.timer == FRAME_TIMER and not self.transitioning:
                return self, NO_EFFECTS
            if event.timer == GLITCH_TIMER and self.transitioning:
                return self, NO_EFFECTS
            ticked, again = self.tick()
            return ticked, ticked._next_tick() if again else NO_EFFECTS

        if not isinstance(event, KeyPress) or self.transitioning:
            return self, NO_EFFECTS

        key = event.key
        if key in UP_KEYS:
            return replace(self, selected=max(0, self.selected - 1)), NO_EFFECTS
        if key in DOWN_KEYS:
            return replace(self, selected=min(len(OPTIONS) - 1, self.selected + 1)), NO_EFFECTS
        if key in CONFIRM_KEYS:
            return self, (Emit(DeathSelected(OPTIONS[self.selected][1])),)
        if key in ("q", "esc"):
            return self, (Emit(DeathSelected(DeathAction.MENU)),)
        return self, NO_EFFECTS


def build_death_controller(death: DeathInfo, *, epoch: int = 0, seed: int | None = None) -> DeathController:
    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)
    return DeathController(death=death, epoch=epoch, seed=seed)
