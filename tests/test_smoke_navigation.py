from __future__ import annotations

import os
from pathlib import Path

from nightmare_assault.settings import ApiSettings, ProviderSettings, Settings, SettingsStore


def test_ui_smoke_open_settings_and_switch_theme(tmp_path: Path) -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from nightmare_assault.app import run

    path = tmp_path / "config.json"
    store = SettingsStore(path)
    store.save(Settings(api=ApiSettings(smart=ProviderSettings(provider_id="openai"))))

    def key(code: int, text: str = "") -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": code, "unicode": text, "mod": 0}))

    def text(value: str) -> None:
        pygame.event.post(pygame.event.Event(pygame.TEXTINPUT, {"text": value}))

    def inject(frame: int) -> None:
        # Navigate: Main Menu -> Settings -> Theme -> second theme
        if frame == 2:
            text("3")
        elif frame == 3:
            text("1")
        elif frame == 4:
            key(pygame.K_DOWN)
        elif frame == 5:
            key(pygame.K_RETURN, "\r")

    assert run(max_frames=12, event_injector=inject, settings_path=path) == 0
    assert store.load().theme == "blood_moon"
