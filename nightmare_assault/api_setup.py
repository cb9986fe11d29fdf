"""API-provider setup wizard: pick a provider, enter a key, test it, confirm."""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from .providers import ProviderInfo, builtin_providers, check_connection, get_provider
from .settings import mask_api_key
from .wizard import AsyncStep, Choice, ChoiceStep, SummaryStep, TextStep, WizardController

API_SETUP_WIZARD = "api_setup"
API_KEY_MAX_LENGTH = 256

Connector = Callable[[str, str], None]


class ErrorCategory(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


def classify_error(text: str) -> ErrorCategory:
    lowered = text.lower()
    if "invalid" in lowered or "401" in lowered or "403" in lowered:
        return ErrorCategory.INVALID_CREDENTIAL
    if "network" in lowered or "connection" in lowered:
        return ErrorCategory.NETWORK
    if "429" in lowered:
        return ErrorCategory.RATE_LIMITED
    return ErrorCategory.UNKNOWN


def friendly_error(text: str) -> str:
    category = classify_error(text)
    if category is ErrorCategory.INVALID_CREDENTIAL:
        return "API Key 無效，請檢查格式是否正確"
    if category is ErrorCategory.NETWORK:
        return "網路連線失敗，請檢查網路設定"
    if category is ErrorCategory.RATE_LIMITED:
        return "請求過於頻繁，請稍後再試"
    return f"連線失敗: {text}"


@dataclass(frozen=True, slots=True)
class ApiDraft:
    provider_id: str = ""
    api_key: str = ""

    @property
    def provider(self) -> ProviderInfo | None:
        return get_provider(self.provider_id)


def _summary_lines(draft: ApiDraft) -> tuple[tuple[str, str], ...]:
    provider = draft.provider
    return (
        ("供應商", provider.name if provider is not None else draft.provider_id),
        ("API Key", mask_api_key(draft.api_key)),
        ("狀態", "✓ 連線成功"),
    )


def api_setup_steps(connect: Connector = check_connection) -> tuple:
    providers = builtin_providers()
    return (
        ChoiceStep(
            name="provider",
            title="選擇 API 供應商",
            choices=tuple(Choice(p.name, p.provider_id, p.description) for p in providers),
            read=lambda d: d.provider_id,
            apply=lambda d, value: replace(d, provider_id=value),
            hint="/ 搜尋",
            filterable=True,
        ),
        TextStep(
            name="api_key",
            title="設定 API Key",
            hint="請輸入您的 API Key（將加密儲存於本地）",
            read=lambda d: d.api_key,
            apply=lambda d, text: replace(d, api_key=text),
            min_length=1,
            max_length=API_KEY_MAX_LENGTH,
            masked=True,
            too_short_message="請輸入 API Key",
        ),
        AsyncStep(
            name="connection_test",
            title="測試連線中...",
            job=lambda d: functools.partial(connect, d.provider_id, d.api_key),
            describe_error=friendly_error,
        ),
        SummaryStep(
            name="summary",
            title="設定完成",
            lines=_summary_lines,
            confirm_label="儲存設定",
            edit_label="重新設定",
        ),
    )


def build_api_setup_wizard(*, epoch: int = 0, connect: Connector = check_connection) -> WizardController:
    return WizardController.create(
        wizard=API_SETUP_WIZARD,
        steps=api_setup_steps(connect),
        draft=ApiDraft(),
        epoch=epoch,
    )
