"""Persisted player settings and the JSON store behind them.

API keys are never written in clear text: they are sealed with AES-256-GCM
under a key derived from the machine identity and stored with the
``encrypted:AES256:`` prefix.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import os
import socket
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "NIGHTMARE_CONFIG_PATH"
CONFIG_VERSION = "1.0"
ENCRYPTED_PREFIX = "encrypted:AES256:"
_KEY_SALT = "nightmare-assault-v1"
_NONCE_SIZE = 12
_MACHINE_ID_FILES = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))


class SettingsError(RuntimeError):
    pass


def _as_float(value: object, fallback: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback


def _as_int(value: object, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True, slots=True)
class AudioSettings:
    bgm_enabled: bool = True
    bgm_volume: float = 0.7
    sfx_enabled: bool = True
    sfx_volume: float = 0.8

    def to_dict(self) -> dict[str, Any]:
        return {
            "bgm_enabled": self.bgm_enabled,
            "bgm_volume": self.bgm_volume,
            "sfx_enabled": self.sfx_enabled,
            "sfx_volume": self.sfx_volume,
        }

    @classmethod
    def from_dict(cls, data: object) -> "AudioSettings":
        if not isinstance(data, dict):
            return cls()
        return cls(
            bgm_enabled=bool(data.get("bgm_enabled", True)),
            bgm_volume=_clamp(_as_float(data.get("bgm_volume"), 0.7), 0.0, 1.0),
            sfx_enabled=bool(data.get("sfx_enabled", True)),
            sfx_volume=_clamp(_as_float(data.get("sfx_volume"), 0.8), 0.0, 1.0),
        )


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    provider_id: str = ""
    base_url: str = ""
    model: str = ""
    max_tokens: int = 4096

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "base_url": self.base_url,
            "model": self.model,
            "max_tokens": self.max_tokens,
        }

    @classmethod
    def from_dict(cls, data: object, *, max_tokens: int) -> "ProviderSettings":
        if not isinstance(data, dict):
            return cls(max_tokens=max_tokens)
        return cls(
            provider_id=str(data.get("provider_id", "")).strip(),
            base_url=str(data.get("base_url", "")).strip(),
            model=str(data.get("model", "")).strip(),
            max_tokens=max(1, _as_int(data.get("max_tokens"), max_tokens)),
        )


@dataclass(frozen=True, slots=True)
class ApiSettings:
    smart: ProviderSettings = field(default_factory=ProviderSettings)
    fast: ProviderSettings = field(default_factory=lambda: ProviderSettings(max_tokens=2048))
    api_keys: dict[str, str] = field(default_factory=dict)
    last_tested: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "smart": self.smart.to_dict(),
            "fast": self.fast.to_dict(),
            "api_keys": dict(self.api_keys),
            "last_tested": dict(self.last_tested),
        }

    @classmethod
    def from_dict(cls, data: object) -> "ApiSettings":
        if not isinstance(data, dict):
            return cls()
        raw_keys = data.get("api_keys")
        raw_tested = data.get("last_tested")
        return cls(
            smart=ProviderSettings.from_dict(data.get("smart"), max_tokens=4096),
            fast=ProviderSettings.from_dict(data.get("fast"), max_tokens=2048),
            api_keys={str(k): str(v) for k, v in raw_keys.items()} if isinstance(raw_keys, dict) else {},
            last_tested={str(k): str(v) for k, v in raw_tested.items()} if isinstance(raw_tested, dict) else {},
        )


@dataclass(frozen=True, slots=True)
class TypewriterSettings:
    enabled: bool = True
    speed: int = 40
    show_cursor: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "speed": self.speed, "show_cursor": self.show_cursor}

    @classmethod
    def from_dict(cls, data: object) -> "TypewriterSettings":
        if not isinstance(data, dict):
            return cls()
        return cls(
            enabled=bool(data.get("enabled", True)),
            speed=max(1, _as_int(data.get("speed"), 40)),
            show_cursor=bool(data.get("show_cursor", True)),
        )


@dataclass(frozen=True, slots=True)
class Settings:
    version: str = CONFIG_VERSION
    language: str = "zh-TW"
    theme: str = "midnight"
    audio: AudioSettings = field(default_factory=AudioSettings)
    api: ApiSettings = field(default_factory=ApiSettings)
    typewriter: TypewriterSettings = field(default_factory=TypewriterSettings)

    def is_configured(self) -> bool:
        return self.api.smart.provider_id != "" or self.api.fast.provider_id != ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "language": self.language,
            "theme": self.theme,
            "audio": self.audio.to_dict(),
            "api": self.api.to_dict(),
            "typewriter": self.typewriter.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: object) -> "Settings":
        if not isinstance(data, dict):
            raise SettingsError("settings root must be a JSON object")
        theme = str(data.get("theme", "")).strip() or "midnight"
        return cls(
            version=str(data.get("version", CONFIG_VERSION)),
            language=str(data.get("language", "zh-TW")),
            theme=theme,
            audio=AudioSettings.from_dict(data.get("audio")),
            api=ApiSettings.from_dict(data.get("api")),
            typewriter=TypewriterSettings.from_dict(data.get("typewriter")),
        )


class SettingsStore:
    """Reads and writes ``Settings`` as JSON.

    ``load()`` returns defaults when the file does not exist yet and raises
    SettingsError when it exists but cannot be used. Writes go through a
    temporary file so a crash never leaves a half-written config behind.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(CONFIG_PATH_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".nightmare" / "config.json"

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Settings:
        if not self._path.exists():
            logger.info("no settings file at %s; using defaults", self._path)
            return Settings()
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SettingsError(f"cannot read settings from {self._path}: {e}") from e
        settings = Settings.from_dict(payload)
        logger.debug("loaded settings from %s (configured=%s)", self._path, settings.is_configured())
        return settings

    def save(self, settings: Settings) -> None:
        tmp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(settings.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
            os.chmod(tmp_path, 0o600)
            tmp_path.replace(self._path)
        except OSError as e:
            raise SettingsError(f"cannot write settings to {self._path}: {e}") from e
        logger.debug("saved settings to %s", self._path)


# Secrets -------------------------------------------------------------------


def _machine_identity() -> str:
    for candidate in _MACHINE_ID_FILES:
        try:
            value = candidate.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return f"{socket.gethostname()}:{Path.home()}"


def machine_key() -> bytes:
    """Derive the 256-bit key used for stored secrets on this machine."""
    return hashlib.sha256(f"{_machine_identity()}{_KEY_SALT}".encode("utf-8")).digest()


def encrypt_secret(plaintext: str, *, key: bytes | None = None) -> str:
    if plaintext == "":
        return ""
    aead = AESGCM(key if key is not None else machine_key())
    nonce = os.urandom(_NONCE_SIZE)
    sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), None)
    return ENCRYPTED_PREFIX + base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_secret(value: str, *, key: bytes | None = None) -> str:
    """Open a value produced by encrypt_secret.

    Values without the prefix are returned unchanged so hand-edited config
    files keep working.
    """
    if not value.startswith(ENCRYPTED_PREFIX):
        return value
    try:
        blob = base64.b64decode(value[len(ENCRYPTED_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise SettingsError("stored secret is not valid base64") from e
    if len(blob) <= _NONCE_SIZE:
        raise SettingsError("stored secret is truncated")
    aead = AESGCM(key if key is not None else machine_key())
    try:
        plaintext = aead.decrypt(blob[:_NONCE_SIZE], blob[_NONCE_SIZE:], None)
    except InvalidTag as e:
        raise SettingsError("stored secret cannot be decrypted on this machine") from e
    return plaintext.decode("utf-8")


def encrypt_api_key(settings: Settings, provider_id: str, secret: str, *, key: bytes | None = None) -> Settings:
    api_keys = dict(settings.api.api_keys)
    api_keys[provider_id] = encrypt_secret(secret, key=key)
    return replace(settings, api=replace(settings.api, api_keys=api_keys))


def decrypt_api_key(settings: Settings, provider_id: str, *, key: bytes | None = None) -> str:
    stored = settings.api.api_keys.get(provider_id, "")
    return decrypt_secret(stored, key=key)


def mask_api_key(api_key: str) -> str:
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}...{api_key[-4:]}"
