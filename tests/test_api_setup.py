from __future__ import annotations

import pytest

from nightmare_assault.api_setup import (
    API_SETUP_WIZARD,
    ApiDraft,
    ErrorCategory,
    build_api_setup_wizard,
    classify_error,
    friendly_error,
)
from nightmare_assault.keys import KeyPress
from nightmare_assault.messages import Dispatch, Emit, Schedule, TaskDone, Tick, WizardFinished
from nightmare_assault.wizard import PROGRESS_TIMER, AsyncStep, SummaryStep, TextStep, WizardController


def press(ctl: WizardController, *keys: str):
    effects = ()
    for key in keys:
        event = KeyPress.char(key) if len(key) == 1 else KeyPress(key)
        ctl, effects = ctl.update(event)
    return ctl, effects


def type_text(ctl: WizardController, text: str) -> WizardController:
    for ch in text:
        ctl, _ = ctl.update(KeyPress.char(ch))
    return ctl


def to_connection_test(calls: list[tuple[str, str]] | None = None, key: str = "sk-test-123456789"):
    def connect(provider_id: str, api_key: str) -> None:
        if calls is not None:
            calls.append((provider_id, api_key))

    ctl = build_api_setup_wizard(epoch=7, connect=connect)
    ctl, _ = press(ctl, "enter")
    ctl = type_text(ctl, key)
    ctl, effects = press(ctl, "enter")
    return ctl, effects


@pytest.mark.parametrize(
    ("text", "category"),
    [
        ("openai: invalid api key (HTTP 401)", ErrorCategory.INVALID_CREDENTIAL),
        ("HTTP 403", ErrorCategory.INVALID_CREDENTIAL),
        ("openai: network timeout", ErrorCategory.NETWORK),
        ("Connection refused", ErrorCategory.NETWORK),
        ("openai: slow down (HTTP 429)", ErrorCategory.RATE_LIMITED),
        ("boom", ErrorCategory.UNKNOWN),
    ],
)
def test_classify_error(text: str, category: ErrorCategory) -> None:
    assert classify_error(text) is category


def test_friendly_error_messages() -> None:
    assert friendly_error("HTTP 401") == "API Key 無效，請檢查格式是否正確"
    assert friendly_error("boom") == "連線失敗: boom"


def test_provider_step_is_first_and_filterable() -> None:
    ctl = build_api_setup_wizard()
    assert ctl.step.name == "provider"
    assert ctl.step.filterable is True
    assert ctl.step.choices[0].value == "openai"


def test_provider_filter_selects_first_match() -> None:
    ctl, _ = press(build_api_setup_wizard(), "/")
    ctl = type_text(ctl, "deepseek")
    ctl, _ = press(ctl, "enter", "enter")
    assert isinstance(ctl.step, TextStep)
    assert ctl.draft.provider_id == "deepseek"


def test_empty_key_is_rejected() -> None:
    ctl, _ = press(build_api_setup_wizard(), "enter", "enter")
    assert ctl.step.name == "api_key"
    assert ctl.error == "請輸入 API Key"


def test_key_is_masked_while_typing() -> None:
    ctl, _ = press(build_api_setup_wizard(), "enter")
    ctl = type_text(ctl, "secret")
    assert ctl.display_text == "••••••"
    assert ctl.text == "secret"


def test_entering_connection_test_dispatches_job_and_progress_timer() -> None:
    calls: list[tuple[str, str]] = []
    ctl, effects = to_connection_test(calls)
    assert isinstance(ctl.step, AsyncStep)
    assert ctl.pending is True
    assert ctl.token == (7, 1)

    dispatch, schedule = effects
    assert isinstance(dispatch, Dispatch)
    assert dispatch.name == "connection_test"
    assert dispatch.token == (7, 1)
    assert isinstance(schedule, Schedule)
    assert schedule.message == Tick(PROGRESS_TIMER, (7, 1))

    dispatch.job()
    assert calls == [("openai", "sk-test-123456789")]


def test_keys_other_than_esc_are_ignored_while_testing() -> None:
    ctl, _ = to_connection_test()
    after, effects = press(ctl, "enter")
    assert after is ctl
    assert effects == ()


def test_progress_ticks_rearm_only_for_current_token() -> None:
    ctl, _ = to_connection_test()
    ticked, effects = ctl.update(Tick(PROGRESS_TIMER, ctl.token))
    assert ticked.waited_ticks == 1
    assert effects == (Schedule(0.1, Tick(PROGRESS_TIMER, ctl.token)),)

    stale, effects = ctl.update(Tick(PROGRESS_TIMER, (7, 0)))
    assert stale is ctl
    assert effects == ()


def test_success_moves_to_summary_with_masked_key() -> None:
    ctl, _ = to_connection_test()
    ctl, effects = ctl.update(TaskDone("connection_test", ctl.token))
    assert isinstance(ctl.step, SummaryStep)
    assert ctl.pending is False
    assert effects == ()
    lines = dict(ctl.step.lines(ctl.draft))
    assert lines["API Key"] == "sk-t...6789"

    _, effects = press(ctl, "enter")
    assert effects == (Emit(WizardFinished(API_SETUP_WIZARD, result=ApiDraft("openai", "sk-test-123456789"))),)


def test_failure_returns_to_key_entry_with_message_and_key_kept() -> None:
    ctl, _ = to_connection_test()
    ctl, _ = ctl.update(TaskDone("connection_test", ctl.token, error="openai: invalid api key (HTTP 401)"))
    assert ctl.step.name == "api_key"
    assert ctl.text == "sk-test-123456789"
    assert ctl.error == "API Key 無效，請檢查格式是否正確"


def test_result_after_esc_is_ignored() -> None:
    ctl, _ = to_connection_test()
    old_token = ctl.token
    ctl, _ = press(ctl, "esc")
    assert ctl.step.name == "api_key"
    assert ctl.token != old_token

    after, effects = ctl.update(TaskDone("connection_test", old_token))
    assert after is ctl
    assert effects == ()


def test_retry_uses_a_fresh_token() -> None:
    ctl, first = to_connection_test()
    ctl, _ = ctl.update(TaskDone("connection_test", ctl.token, error="network timeout"))
    ctl, second = press(ctl, "enter")
    assert second[0].token != first[0].token

    # The first attempt finishing late changes nothing.
    after, _ = ctl.update(TaskDone("connection_test", first[0].token))
    assert after is ctl


def test_summary_edit_restarts_from_provider() -> None:
    ctl, _ = to_connection_test()
    ctl, _ = ctl.update(TaskDone("connection_test", ctl.token))
    ctl, _ = press(ctl, "down", "enter")
    assert ctl.index == 0
    assert ctl.step.choices[ctl.cursor].value == "openai"


def test_esc_from_summary_skips_connection_test() -> None:
    ctl, _ = to_connection_test()
    ctl, _ = ctl.update(TaskDone("connection_test", ctl.token))
    ctl, effects = press(ctl, "esc")
    assert ctl.step.name == "api_key"
    assert effects == ()
