from __future__ import annotations

import threading

import pytest

from nightmare_assault.themes import BUILTIN_THEMES, ThemeNotFoundError, ThemeRegistry, hex_to_rgb


def test_catalog_order_and_default() -> None:
    registry = ThemeRegistry()
    assert [t.theme_id for t in registry.all()] == [
        "midnight",
        "blood_moon",
        "terminal_green",
        "silent_hill_fog",
        "high_contrast",
    ]
    assert registry.current().theme_id == "midnight"
    assert registry.is_current("midnight")


def test_set_current_and_lookup() -> None:
    registry = ThemeRegistry()
    registry.set_current("blood_moon")
    assert registry.current().theme_id == "blood_moon"
    assert not registry.is_current("midnight")
    assert registry.get("terminal_green") is not None
    assert registry.get("nope") is None
    assert registry.index_of("high_contrast") == 4


def test_unknown_theme_keeps_current() -> None:
    registry = ThemeRegistry()
    with pytest.raises(ThemeNotFoundError):
        registry.set_current("vaporwave")
    assert registry.current().theme_id == "midnight"


def test_constructor_validation() -> None:
    with pytest.raises(ValueError):
        ThemeRegistry(())
    with pytest.raises(ValueError):
        ThemeRegistry(BUILTIN_THEMES, current_id="missing")


def test_hex_colours() -> None:
    assert hex_to_rgb("#1E293B") == (0x1E, 0x29, 0x3B)
    assert BUILTIN_THEMES[2].colors.background == (0, 0, 0)
    with pytest.raises(ValueError):
        hex_to_rgb("#fff")


def test_concurrent_reads_always_see_a_theme() -> None:
    registry = ThemeRegistry()
    seen: list[str] = []

    def reader() -> None:
        for _ in range(200):
            seen.append(registry.current().theme_id)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for theme in BUILTIN_THEMES * 20:
        registry.set_current(theme.theme_id)
    for t in threads:
        t.join()

    valid = {t.theme_id for t in BUILTIN_THEMES}
    assert len(seen) == 800
    assert set(seen) <= valid
