"""Story-model provider catalogue and connectivity checks.

Only the connectivity check lives here; story generation itself belongs to
the narrative engine. Four wire formats are understood:

    openai     GET  {base}/models              Authorization: Bearer <key>
    anthropic  POST {base}/messages            x-api-key: <key>
    google     GET  {base}/models?key=<key>
    cohere     GET  {base}/models              Authorization: Bearer <key>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0
# Interactive setup checks give up sooner; exit waits on an in-flight check.
SETUP_TIMEOUT_S = 5.0
ANTHROPIC_VERSION = "2023-06-01"


class ApiFormat(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    COHERE = "cohere"


@dataclass(frozen=True, slots=True)
class ProviderInfo:
    provider_id: str
    name: str
    description: str
    base_url: str
    api_format: ApiFormat = ApiFormat.OPENAI
    category: str = "official"
    default_model: str = ""


BUILTIN_PROVIDERS: tuple[ProviderInfo, ...] = (
    ProviderInfo("openai", "OpenAI", "GPT-4o, GPT-4 Turbo, o1", "https://api.openai.com/v1", default_model="gpt-4o"),
    ProviderInfo(
        "anthropic",
        "Anthropic",
        "Claude 3.5 Sonnet, Claude 3 Opus",
        "https://api.anthropic.com/v1",
        ApiFormat.ANTHROPIC,
        default_model="claude-3-5-sonnet-latest",
    ),
    ProviderInfo(
        "google",
        "Google",
        "Gemini Pro, Gemini Ultra",
        "https://generativelanguage.googleapis.com/v1beta",
        ApiFormat.GOOGLE,
        default_model="gemini-1.5-pro",
    ),
    ProviderInfo("mistral", "Mistral", "Mistral Large, Codestral", "https://api.mistral.ai/v1"),
    ProviderInfo("cohere", "Cohere", "Command R+", "https://api.cohere.ai/v1", ApiFormat.COHERE, default_model="command-r-plus"),
    ProviderInfo("xai", "xAI", "Grok-2", "https://api.x.ai/v1"),
    ProviderInfo("deepseek", "DeepSeek", "DeepSeek V3, DeepSeek Coder", "https://api.deepseek.com/v1"),
    ProviderInfo("zhipu", "智譜 AI", "GLM-4", "https://open.bigmodel.cn/api/paas/v4"),
    ProviderInfo("moonshot", "Moonshot", "Kimi", "https://api.moonshot.cn/v1"),
    ProviderInfo("baichuan", "百川", "Baichuan", "https://api.baichuan-ai.com/v1"),
    ProviderInfo("minimax", "MiniMax", "abab6.5", "https://api.minimax.chat/v1"),
    ProviderInfo("01ai", "零一萬物", "Yi-Large", "https://api.lingyiwanwu.com/v1"),
    ProviderInfo("reka", "Reka", "Reka Core", "https://api.reka.ai/v1"),
    ProviderInfo("ai21", "AI21", "Jamba", "https://api.ai21.com/studio/v1"),
    ProviderInfo("openrouter", "OpenRouter", "多模型聚合平台", "https://openrouter.ai/api/v1", category="gateway"),
    ProviderInfo("together", "Together AI", "開源模型平台", "https://api.together.xyz/v1", category="gateway"),
    ProviderInfo("groq", "Groq", "超快推理平台", "https://api.groq.com/openai/v1", category="gateway"),
    ProviderInfo("fireworks", "Fireworks", "高性能推理", "https://api.fireworks.ai/inference/v1", category="gateway"),
    ProviderInfo("perplexity", "Perplexity", "搜尋增強 AI", "https://api.perplexity.ai", category="gateway"),
    ProviderInfo("deepinfra", "Deepinfra", "開源模型託管", "https://api.deepinfra.com/v1/openai", category="gateway"),
    ProviderInfo("lepton", "Lepton AI", "AI 平台", "https://api.lepton.ai/v1", category="gateway"),
    ProviderInfo("novita", "Novita AI", "多模型平台", "https://api.novita.ai/v3/openai", category="gateway"),
    ProviderInfo("siliconflow", "SiliconFlow", "矽流科技", "https://api.siliconflow.cn/v1", category="gateway"),
    ProviderInfo("cerebras", "Cerebras", "超快推理", "https://api.cerebras.ai/v1", category="gateway"),
    ProviderInfo("hyperbolic", "Hyperbolic", "開源模型", "https://api.hyperbolic.xyz/v1", category="gateway"),
    ProviderInfo("sambanova", "Sambanova", "企業 AI", "https://api.sambanova.ai/v1", category="gateway"),
    ProviderInfo("ollama", "Ollama", "本地模型", "http://localhost:11434/v1", category="local"),
    ProviderInfo("lmstudio", "LM Studio", "本地 GUI", "http://localhost:1234/v1", category="local"),
)

SETUP_CATEGORIES = ("official", "gateway")


class ProviderError(RuntimeError):
    """Raised for every failed provider call.

    The message always carries the provider id and, when the server answered,
    the HTTP status (``HTTP 401``) so callers can classify it from text alone.
    """

    def __init__(self, provider_id: str, message: str, *, status_code: int = 0) -> None:
        self.provider_id = provider_id
        self.status_code = status_code
        detail = f"{provider_id}: {message}"
        if status_code:
            detail = f"{detail} (HTTP {status_code})"
        super().__init__(detail)


class UnknownProviderError(ProviderError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(provider_id, "unknown provider")


def builtin_providers(*, categories: tuple[str, ...] | None = SETUP_CATEGORIES) -> list[ProviderInfo]:
    """Return the catalogue in fixed order, optionally limited to some categories."""
    if categories is None:
        return list(BUILTIN_PROVIDERS)
    return [p for p in BUILTIN_PROVIDERS if p.category in categories]


def get_provider(provider_id: str) -> ProviderInfo | None:
    for provider in BUILTIN_PROVIDERS:
        if provider.provider_id == provider_id:
            return provider
    return None


class ProviderClient:
    def __init__(
        self,
        provider: ProviderInfo,
        api_key: str,
        *,
        model: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self._provider = provider
        self._api_key = api_key
        self._model = model or provider.default_model
        self._timeout = timeout
        self._transport = transport

    @property
    def provider(self) -> ProviderInfo:
        return self._provider

    def _base(self) -> str:
        return self._provider.base_url.rstrip("/")

    def _build_request(self) -> tuple[str, str, dict[str, str], dict | None]:
        """Return (method, url, headers, json body) for a minimal liveness call."""
        fmt = self._provider.api_format
        if fmt == ApiFormat.ANTHROPIC:
            headers = {
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            }
            body = {
                "model": self._model,
                "max_tokens": 10,
                "messages": [{"role": "user", "content": "Hi"}],
            }
            return "POST", f"{self._base()}/messages", headers, body
        if fmt == ApiFormat.GOOGLE:
            return "GET", f"{self._base()}/models?key={self._api_key}", {}, None

        headers = {"Authorization": f"Bearer {self._api_key}"}
        return "GET", f"{self._base()}/models", headers, None

    def test_connection(self) -> None:
        provider_id = self._provider.provider_id
        method, url, headers, body = self._build_request()
        logger.debug("connection test provider=%s method=%s", provider_id, method)

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.request(method, url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            raise ProviderError(provider_id, f"network timeout after {self._timeout}s") from e
        except httpx.TransportError as e:
            raise ProviderError(provider_id, "network connection failed") from e

        if resp.status_code in (401, 403):
            raise ProviderError(provider_id, "invalid api key", status_code=resp.status_code)
        if resp.status_code >= 400:
            raise ProviderError(provider_id, resp.text.strip() or resp.reason_phrase, status_code=resp.status_code)
        logger.info("connection test ok provider=%s status=%d", provider_id, resp.status_code)


def create_client(provider_id: str, api_key: str, **kwargs: object) -> ProviderClient:
    provider = get_provider(provider_id)
    if provider is None:
        raise UnknownProviderError(provider_id)
    return ProviderClient(provider, api_key, **kwargs)  # type: ignore[arg-type]


def check_connection(
    provider_id: str,
    api_key: str,
    *,
    timeout: float = SETUP_TIMEOUT_S,
    transport: httpx.BaseTransport | None = None,
) -> None:
    """Build a client for ``provider_id`` and run its connectivity test."""
    create_client(provider_id, api_key, timeout=timeout, transport=transport).test_connection()
