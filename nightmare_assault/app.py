"""Pygame shell: a resizable window that behaves like a character terminal.

Window pixels are divided into monospace cells; the cell grid is the
terminal size reported to the root controller. Key presses are translated
into ``KeyPress`` values and every frame the event loop is pumped once and
the current session is drawn.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pygame

from .keys import KeyPress
from .loop import EventLoop
from .messages import Resize
from .root import MIN_HEIGHT, MIN_WIDTH, Services, Session, new_session, update
from .settings import SettingsStore
from .themes import ThemeRegistry
from .view import Frame, render

logger = logging.getLogger(__name__)

TARGET_FPS = 60
FONT_SIZE = 18
START_COLUMNS = MIN_WIDTH + 20
START_ROWS = MIN_HEIGHT + 6
CJK_FONT_NAMES = (
    "notosansmonocjktc",
    "notosanscjktc",
    "notosanscjk",
    "sourcehansans",
    "microsoftjhenghei",
    "pingfangtc",
    "wenquanyimicrohei",
)

KEY_NAMES: dict[int, str] = {
    pygame.K_UP: "up",
    pygame.K_DOWN: "down",
    pygame.K_LEFT: "left",
    pygame.K_RIGHT: "right",
    pygame.K_RETURN: "enter",
    pygame.K_KP_ENTER: "enter",
    pygame.K_ESCAPE: "esc",
    pygame.K_BACKSPACE: "backspace",
    pygame.K_TAB: "tab",
    pygame.K_PAGEUP: "pgup",
    pygame.K_PAGEDOWN: "pgdown",
}


def key_from_event(event: pygame.event.Event) -> KeyPress | None:
    """Translate a KEYDOWN event; returns None for keys the game ignores.

    Printable characters come from TEXTINPUT instead (``keys_from_text``),
    the only event that carries input-method text.
    """
    mods = getattr(event, "mod", 0)
    if event.key == pygame.K_c and mods & pygame.KMOD_CTRL:
        return KeyPress("ctrl+c")
    if event.key == pygame.K_TAB and mods & pygame.KMOD_SHIFT:
        return KeyPress("shift+tab")
    name = KEY_NAMES.get(event.key)
    if name is not None:
        return KeyPress(name)
    return None


def keys_from_text(text: str) -> list[KeyPress]:
    """One KeyPress per printable code point of a TEXTINPUT event."""
    return [KeyPress.char(ch) for ch in text if ch.isprintable()]


def _load_font(size: int) -> pygame.font.Font:
    path = pygame.font.match_font(",".join(CJK_FONT_NAMES))
    if path:
        return pygame.font.Font(path, size)
    logger.info("no CJK font found; falling back to the default font")
    return pygame.font.Font(None, size)


class TerminalApp:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font, loop: EventLoop, registry: ThemeRegistry) -> None:
        self._surface = surface
        self._font = font
        self._loop = loop
        self._registry = registry
        cell_w, _ = font.size("M")
        self._cell = (max(1, cell_w), max(1, font.get_linesize()))
        self._grid = (0, 0)

    @property
    def running(self) -> bool:
        return self._loop.running

    @property
    def cell_size(self) -> tuple[int, int]:
        return self._cell

    def grid_for(self, width_px: int, height_px: int) -> tuple[int, int]:
        return (width_px // self._cell[0], height_px // self._cell[1])

    def sync_size(self) -> None:
        grid = self.grid_for(*self._surface.get_size())
        if grid != self._grid:
            self._grid = grid
            self._loop.post(Resize(*grid))

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self._loop.stop()
            return
        if event.type == pygame.VIDEORESIZE:
            self._surface = pygame.display.get_surface() or self._surface
            self.sync_size()
            return
        if event.type == pygame.TEXTINPUT:
            for key in keys_from_text(getattr(event, "text", "")):
                self._loop.post(key)
            return
        if event.type == pygame.KEYDOWN:
            key = key_from_event(event)
            if key is not None:
                self._loop.post(key)

    def tick(self) -> None:
        self._loop.pump()

    def render(self) -> None:
        frame = render(self._loop.state, self._registry)
        self._draw(frame)

    def _draw(self, frame: Frame) -> None:
        self._surface.fill(frame.background)
        cell_w, cell_h = self._cell
        max_rows = self._surface.get_height() // cell_h
        for row, line in enumerate(frame.lines[:max_rows]):
            x = (1 + frame.offset_x) * cell_w
            y = row * cell_h
            for span in line:
                if not span.text:
                    continue
                glyphs = self._font.render(span.text, True, span.color)
                self._surface.blit(glyphs, (x, y))
                x += glyphs.get_width()


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    settings_path: Path | None = None,
) -> int:
    pygame.init()
    pygame.display.set_caption("Nightmare Assault")
    font = _load_font(FONT_SIZE)
    cell_w, _ = font.size("M")
    surface = pygame.display.set_mode(
        (max(1, cell_w) * START_COLUMNS, font.get_linesize() * START_ROWS),
        pygame.RESIZABLE,
    )
    pygame.key.set_repeat(300, 40)
    pygame.key.start_text_input()
    clock = pygame.time.Clock()

    registry = ThemeRegistry()
    store = SettingsStore(settings_path if settings_path is not None else SettingsStore.default_path())
    session: Session = new_session(Services(store=store, registry=registry))
    loop: EventLoop[Session] = EventLoop(handler=update, state=session)
    app = TerminalApp(surface, font, loop, registry)
    app.sync_size()

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.tick()
            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        loop.shutdown()
        pygame.quit()

    return 0
