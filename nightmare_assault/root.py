"""Root controller: which screen is active and how screens hand over.

``update(session, event)`` is the single entry point the event loop calls.
It intercepts global keys, reacts to completion messages by building the
next screen's controller, and forwards everything else to the active one.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from .api_setup import API_SETUP_WIZARD, ApiDraft, build_api_setup_wizard
from .death import DeathAction, DeathController, build_death_controller
from .debrief import DebriefAction, DebriefController
from .game_config import GameConfig
from .game_setup import GAME_SETUP_WIZARD, build_game_setup_wizard
from .keys import CANCEL, FORCE_QUIT, KeyPress
from .menu import (
    MainMenuAction,
    MenuController,
    SettingsAction,
    build_main_menu,
    build_settings_menu,
    build_theme_selector,
)
from .messages import (
    NO_EFFECTS,
    DeathSelected,
    DebriefSelected,
    Effects,
    MenuSelected,
    PlayerDied,
    Quit,
    Resize,
    ThemeBack,
    ThemeSelected,
    WizardFinished,
)
from .providers import check_connection, get_provider
from .report import DebriefReport, DeathInfo, DeathType
from .settings import ProviderSettings, Settings, SettingsError, SettingsStore, encrypt_api_key
from .story_loading import StoryLoadingController
from .themes import ThemeNotFoundError, ThemeRegistry
from .wizard import WizardController

logger = logging.getLogger(__name__)

MIN_WIDTH = 80
MIN_HEIGHT = 24


class Mode(str, Enum):
    LOADING = "loading"
    API_SETUP = "api_setup"
    MAIN_MENU = "main_menu"
    SETTINGS = "settings"
    THEME_SELECTOR = "theme_selector"
    GAME_SETUP = "game_setup"
    GAME = "game"
    DEATH = "death"
    DEBRIEF = "debrief"


Controller = Union[
    MenuController,
    WizardController,
    StoryLoadingController,
    DeathController,
    DebriefController,
    None,
]


@dataclass(frozen=True, slots=True)
class Services:
    """Collaborators reachable from the root controller."""

    store: SettingsStore
    registry: ThemeRegistry
    connect: Callable[[str, str], None] = check_connection


@dataclass(frozen=True, slots=True)
class Session:
    services: Services = field(compare=False)
    mode: Mode = Mode.LOADING
    prior_mode: Mode = Mode.LOADING
    width: int = 0
    height: int = 0
    ready: bool = False
    settings: Settings = field(default_factory=Settings)
    game_config: GameConfig | None = None
    has_save_files: bool = False
    report: DebriefReport | None = None
    controller: Controller = None
    serial: int = 0

    @property
    def size_ok(self) -> bool:
        return self.width >= MIN_WIDTH and self.height >= MIN_HEIGHT


def new_session(services: Services, *, has_save_files: bool = False) -> Session:
    return Session(services=services, has_save_files=has_save_files)


def _enter(session: Session, mode: Mode, build: Callable[[int], Controller]) -> Session:
    """Switch to ``mode`` with a controller built for a fresh epoch."""
    serial = session.serial + 1
    logger.info("mode %s -> %s", session.mode.value, mode.value)
    return replace(session, prior_mode=session.mode, mode=mode, controller=build(serial), serial=serial)


def _to_main_menu(session: Session) -> tuple[Session, Effects]:
    has_saves = session.has_save_files
    return _enter(session, Mode.MAIN_MENU, lambda _: build_main_menu(has_save_files=has_saves)), NO_EFFECTS


def _to_settings(session: Session) -> tuple[Session, Effects]:
    return _enter(session, Mode.SETTINGS, lambda _: build_settings_menu()), NO_EFFECTS


def _to_game_setup(session: Session) -> tuple[Session, Effects]:
    entered = _enter(session, Mode.GAME_SETUP, lambda epoch: build_game_setup_wizard(epoch=epoch))
    return replace(entered, game_config=None), NO_EFFECTS


def _to_api_setup(session: Session) -> tuple[Session, Effects]:
    connect = session.services.connect
    return _enter(session, Mode.API_SETUP, lambda epoch: build_api_setup_wizard(epoch=epoch, connect=connect)), NO_EFFECTS


def _to_game(session: Session, config: GameConfig) -> tuple[Session, Effects]:
    entered = _enter(session, Mode.GAME, lambda epoch: StoryLoadingController(config=config, epoch=epoch))
    entered = replace(entered, game_config=config)
    return entered, entered.controller.start()


def _save(session: Session) -> None:
    try:
        session.services.store.save(session.settings)
    except SettingsError as e:
        logger.error("settings not saved: %s", e)


def _boot(session: Session) -> tuple[Session, Effects]:
    try:
        settings = session.services.store.load()
    except SettingsError as e:
        logger.warning("falling back to default settings: %s", e)
        settings = Settings()
    try:
        session.services.registry.set_current(settings.theme)
    except ThemeNotFoundError:
        logger.warning("unknown theme %r in settings; keeping %s", settings.theme, session.services.registry.current().theme_id)

    booted = replace(session, settings=settings, ready=True)
    if not settings.is_configured():
        return _to_api_setup(booted)
    return _to_main_menu(booted)


def update(session: Session, event: object) -> tuple[Session, Effects]:
    if isinstance(event, KeyPress) and event.key == FORCE_QUIT:
        return session, (Quit(),)

    if isinstance(event, Resize):
        resized = replace(session, width=event.width, height=event.height)
        if not resized.ready:
            if resized.size_ok:
                return _boot(resized)
            return resized, NO_EFFECTS
        return _forward(resized, event)

    if not session.ready:
        return session, NO_EFFECTS

    if isinstance(event, KeyPress):
        if not session.size_ok:
            return session, NO_EFFECTS
        if event.key == CANCEL and session.mode is Mode.GAME:
            return _to_main_menu(session)
        return _forward(session, event)

    if isinstance(event, MenuSelected):
        return _on_menu_selected(session, event)
    if isinstance(event, (ThemeSelected, ThemeBack)):
        return _on_theme_done(session, event)
    if isinstance(event, WizardFinished):
        return _on_wizard_finished(session, event)
    if isinstance(event, PlayerDied):
        return _on_player_died(session, event)
    if isinstance(event, DeathSelected):
        return _on_death_selected(session, event)
    if isinstance(event, DebriefSelected):
        return _on_debrief_selected(session, event)

    return _forward(session, event)


def _forward(session: Session, event: object) -> tuple[Session, Effects]:
    if session.controller is None:
        return session, NO_EFFECTS
    controller, effects = session.controller.update(event)
    if controller is session.controller:
        return session, effects
    return replace(session, controller=controller), effects


def _on_menu_selected(session: Session, msg: MenuSelected) -> tuple[Session, Effects]:
    if session.mode is Mode.MAIN_MENU:
        if msg.action is MainMenuAction.NEW_GAME:
            return _to_game_setup(session)
        if msg.action is MainMenuAction.SETTINGS:
            return _to_settings(session)
        if msg.action is MainMenuAction.CONTINUE:
            logger.info("continue selected; saved games are not available yet")
        return session, NO_EFFECTS

    if session.mode is Mode.SETTINGS:
        if msg.action is SettingsAction.THEME:
            registry = session.services.registry
            return _enter(session, Mode.THEME_SELECTOR, lambda _: build_theme_selector(registry)), NO_EFFECTS
        if msg.action is SettingsAction.API:
            return _to_api_setup(session)
        if msg.action is SettingsAction.BACK:
            return _to_main_menu(session)
        if msg.action is SettingsAction.AUDIO:
            logger.info("audio settings selected; audio is not available yet")
        return session, NO_EFFECTS

    logger.debug("dropping stale %r in mode %s", msg, session.mode.value)
    return session, NO_EFFECTS


def _on_theme_done(session: Session, msg: ThemeSelected | ThemeBack) -> tuple[Session, Effects]:
    if session.mode is not Mode.THEME_SELECTOR:
        return session, NO_EFFECTS
    if isinstance(msg, ThemeSelected):
        session = replace(session, settings=replace(session.settings, theme=msg.theme_id))
        _save(session)
    return _to_settings(session)


def _on_wizard_finished(session: Session, msg: WizardFinished) -> tuple[Session, Effects]:
    if msg.wizard == GAME_SETUP_WIZARD and session.mode is Mode.GAME_SETUP:
        if msg.cancelled or not isinstance(msg.result, GameConfig):
            return _to_main_menu(replace(session, game_config=None))
        return _to_game(session, msg.result.freeze())

    if msg.wizard == API_SETUP_WIZARD and session.mode is Mode.API_SETUP:
        if msg.cancelled or not isinstance(msg.result, ApiDraft):
            if session.prior_mode is Mode.SETTINGS:
                return _to_settings(session)
            return _to_main_menu(session)
        session = replace(session, settings=_store_provider(session.settings, msg.result))
        _save(session)
        return _to_main_menu(session)

    logger.debug("dropping stale %r in mode %s", msg, session.mode.value)
    return session, NO_EFFECTS


def _store_provider(settings: Settings, draft: ApiDraft) -> Settings:
    provider = get_provider(draft.provider_id)
    smart = ProviderSettings(
        provider_id=draft.provider_id,
        base_url=provider.base_url if provider is not None else "",
        model=provider.default_model if provider is not None else "",
        max_tokens=settings.api.smart.max_tokens,
    )
    updated = encrypt_api_key(settings, draft.provider_id, draft.api_key)
    last_tested = dict(updated.api.last_tested)
    last_tested[draft.provider_id] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    return replace(updated, api=replace(updated.api, smart=smart, last_tested=last_tested))


def _on_player_died(session: Session, msg: PlayerDied) -> tuple[Session, Effects]:
    if session.mode is not Mode.GAME or not isinstance(msg.report, DebriefReport):
        return session, NO_EFFECTS
    report: DebriefReport = msg.report
    death = report.death if report.death is not None else DeathInfo(DeathType.HP)
    entered = _enter(session, Mode.DEATH, lambda epoch: build_death_controller(death, epoch=epoch))
    entered = replace(entered, report=report)
    return entered, entered.controller.start()


def _on_death_selected(session: Session, msg: DeathSelected) -> tuple[Session, Effects]:
    if session.mode is not Mode.DEATH:
        return session, NO_EFFECTS
    if msg.action is DeathAction.DEBRIEF and session.report is not None:
        report, width, height = session.report, session.width, session.height
        return _enter(session, Mode.DEBRIEF, lambda _: DebriefController.create(report, width=width, height=height)), NO_EFFECTS
    return _to_main_menu(replace(session, report=None))


def _on_debrief_selected(session: Session, msg: DebriefSelected) -> tuple[Session, Effects]:
    if session.mode is not Mode.DEBRIEF:
        return session, NO_EFFECTS
    cleared = replace(session, report=None)
    if msg.action is DebriefAction.ROLLBACK and session.game_config is not None:
        return _to_game(cleared, session.game_config)
    if msg.action is DebriefAction.NEW_GAME:
        return _to_game_setup(cleared)
    return _to_main_menu(cleared)
