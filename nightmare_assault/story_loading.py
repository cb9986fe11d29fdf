"""Game-state placeholder shown while the story engine is not available.

Ticks every half second to show elapsed time, rotates the flavour line every
three seconds and warns once the wait passes ``SLOW_WARNING_S``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .game_config import GameConfig
from .messages import NO_EFFECTS, Effects, Schedule, Tick, Token

TICK_INTERVAL_S = 0.5
FLAVOR_ROTATE_S = 3
SLOW_WARNING_S = 8.0
LOADING_TIMER = "loading.tick"

FLAVOR_TEXTS = (
    "正在進入惡夢...",
    "黑暗正在聚集...",
    "命運的齒輪開始轉動...",
    "深淵正在回望你...",
    "恐懼在等待著...",
    "古老的低語傳來...",
    "陰影正在逼近...",
    "真相即將揭露...",
)


@dataclass(frozen=True, slots=True)
class StoryLoadingController:
    config: GameConfig
    epoch: int = 0
    ticks: int = 0
    flavor_index: int = 0

    @property
    def token(self) -> Token:
        return (self.epoch, 0)

    @property
    def elapsed_s(self) -> float:
        return self.ticks * TICK_INTERVAL_S

    @property
    def slow(self) -> bool:
        return self.elapsed_s >= SLOW_WARNING_S

    @property
    def flavor_text(self) -> str:
        return FLAVOR_TEXTS[self.flavor_index % len(FLAVOR_TEXTS)]

    def start(self) -> Effects:
        return (Schedule(TICK_INTERVAL_S, Tick(LOADING_TIMER, self.token)),)

    def update(self, event: object) -> tuple["StoryLoadingController", Effects]:
        if not isinstance(event, Tick) or event.timer != LOADING_TIMER or event.token != self.token:
            return self, NO_EFFECTS
        ticked = replace(self, ticks=self.ticks + 1)
        elapsed = ticked.elapsed_s
        if elapsed.is_integer() and int(elapsed) % FLAVOR_ROTATE_S == 0:
            ticked = replace(ticked, flavor_index=ticked.flavor_index + 1)
        return ticked, ticked.start()
