from __future__ import annotations

from .game_config import THEME_MAX_LENGTH, THEME_MIN_LENGTH, Difficulty, GameConfig, GameLength
from .wizard import Choice, ChoiceStep, SummaryStep, TextStep, WizardController, toggle_step

GAME_SETUP_WIZARD = "game_setup"


def _summary_lines(config: GameConfig) -> tuple[tuple[str, str], ...]:
    return (
        ("主題", config.theme),
        ("難度", f"{config.difficulty.label}（{config.difficulty.description}）"),
        ("長度", f"{config.length.label}（{config.length.description}）"),
        ("成人內容", "開啟" if config.adult_mode else "關閉"),
    )


def game_setup_steps() -> tuple:
    return (
        TextStep(
            name="theme",
            title="步驟 1/5：輸入故事主題",
            hint=f"輸入一個恐怖主題來開始你的惡夢冒險 ({THEME_MIN_LENGTH}-{THEME_MAX_LENGTH} 個字元)",
            read=lambda c: c.theme,
            apply=lambda c, text: c.with_theme(text),
            min_length=THEME_MIN_LENGTH,
            max_length=THEME_MAX_LENGTH,
            too_short_message=f"主題必須至少 {THEME_MIN_LENGTH} 個字元",
            too_long_message=f"主題不能超過 {THEME_MAX_LENGTH} 個字元",
        ),
        ChoiceStep(
            name="difficulty",
            title="步驟 2/5：選擇難度",
            choices=tuple(Choice(d.label, d, d.description) for d in Difficulty),
            read=lambda c: c.difficulty,
            apply=lambda c, value: c.with_difficulty(value),
        ),
        ChoiceStep(
            name="length",
            title="步驟 3/5：選擇遊戲長度",
            choices=tuple(Choice(g.label, g, g.description) for g in GameLength),
            read=lambda c: c.length,
            apply=lambda c, value: c.with_length(value),
        ),
        toggle_step(
            "adult_mode",
            "步驟 4/5：內容分級",
            read=lambda c: c.adult_mode,
            apply=lambda c, value: c.with_adult_mode(value),
            on_label="開啟成人內容",
            off_label="關閉成人內容",
            hint="成人內容包含更強烈的恐怖與血腥描寫",
        ),
        SummaryStep(name="summary", title="步驟 5/5：確認設定", lines=_summary_lines),
    )


def build_game_setup_wizard(*, epoch: int = 0, draft: GameConfig | None = None) -> WizardController:
    return WizardController.create(
        wizard=GAME_SETUP_WIZARD,
        steps=game_setup_steps(),
        draft=draft if draft is not None else GameConfig(),
        epoch=epoch,
    )
