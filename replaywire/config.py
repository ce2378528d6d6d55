"""Replay configuration"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
import yaml
from dotenv import load_dotenv

DEFAULT_FIXTURE_DIR = "tests/fixtures/http"

RequestNormalizer = Callable[[httpx.Request], httpx.Request]
ResponseBodyNormalizer = Callable[[bytes, httpx.Request], bytes]
NotFoundHook = Callable[[httpx.Request, str], None]


class ReplayMode(Enum):
    """重播模式"""
    LIVE = "live"           # 正常執行，呼叫外部 API
    RECORD = "record"       # 執行並記錄回應
    REPLAY = "replay"       # 從 fixtures 讀取，不呼叫外部 API


def keep_request(request: httpx.Request) -> httpx.Request:
    return request


def keep_body(body: bytes, request: httpx.Request) -> bytes:
    return body


def intercept_all(request: httpx.Request) -> bool:
    return True


def _as_bool(value: Union[str, bool, None], default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_path(value: Optional[Union[str, Path]]) -> Optional[Path]:
    if value is None or value == "":
        return None
    return Path(value)


@dataclass
class ReplayConfig:
    """How requests are mocked, loaded and recorded.

    Attributes:
        enabled: When False every request goes straight to the network
        loading_dir: Directory chains are replayed from
        recording_dir: Directory live responses are recorded to
        fallback_to_network: Make the real call when nothing matched; when
            False a miss raises ``ReplayNotFoundError``
        normalize_request: Applied before fingerprinting
        normalize_response_body: Applied to live bodies before they are
            recorded, e.g. to redact tokens
        should_intercept: Requests for which this returns False bypass
            replay entirely
        on_not_found: Called with the request and expected chain file name
            just before a miss is rejected
    """

    enabled: bool = True
    loading_dir: Optional[Path] = None
    recording_dir: Optional[Path] = None
    fallback_to_network: bool = True
    normalize_request: RequestNormalizer = field(default=keep_request)
    normalize_response_body: ResponseBodyNormalizer = field(default=keep_body)
    should_intercept: Callable[[httpx.Request], bool] = field(default=intercept_all)
    on_not_found: Optional[NotFoundHook] = None

    def __post_init__(self):
        self.loading_dir = _as_path(self.loading_dir)
        self.recording_dir = _as_path(self.recording_dir)

    @classmethod
    def from_mode(
        cls,
        mode: Union[str, ReplayMode] = ReplayMode.LIVE,
        fixture_dir: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> "ReplayConfig":
        """Build a config from one of the three standard modes.

        Args:
            mode: live / record / replay
            fixture_dir: Directory for loading and recording
            **overrides: Any other ReplayConfig field

        Returns:
            ReplayConfig
        """
        replay_mode = ReplayMode(mode)
        fixtures = Path(fixture_dir or DEFAULT_FIXTURE_DIR)

        if replay_mode == ReplayMode.RECORD:
            config = cls(loading_dir=fixtures, recording_dir=fixtures, fallback_to_network=True)
        elif replay_mode == ReplayMode.REPLAY:
            config = cls(loading_dir=fixtures, fallback_to_network=False)
        else:
            config = cls()

        return replace(config, **overrides) if overrides else config

    @classmethod
    def from_mapping(cls, values: dict, **overrides: Any) -> "ReplayConfig":
        """Build a config from plain settings (YAML file, environment).

        Recognized keys: ``mode``, ``fixture_dir``, ``loading_dir``,
        ``recording_dir``, ``fallback_to_network``, ``enabled``.
        Explicit directories and flags win over what ``mode`` implies.
        """
        config = cls.from_mode(values.get("mode") or ReplayMode.LIVE, values.get("fixture_dir"))

        changes: dict[str, Any] = {}
        if values.get("loading_dir"):
            changes["loading_dir"] = Path(values["loading_dir"])
        if values.get("recording_dir"):
            changes["recording_dir"] = Path(values["recording_dir"])
        if values.get("fallback_to_network") is not None:
            changes["fallback_to_network"] = _as_bool(values["fallback_to_network"], True)
        if values.get("enabled") is not None:
            changes["enabled"] = _as_bool(values["enabled"], True)
        changes.update(overrides)

        return replace(config, **changes) if changes else config

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides: Any) -> "ReplayConfig":
        """Build a config from ``REPLAY_*`` environment variables.

        A ``.env`` file is loaded first; variables already set win.
        """
        load_dotenv(dotenv_path)
        return cls.from_mapping(
            {
                "mode": os.getenv("REPLAY_MODE"),
                "fixture_dir": os.getenv("REPLAY_FIXTURE_DIR"),
                "loading_dir": os.getenv("REPLAY_LOADING_DIR"),
                "recording_dir": os.getenv("REPLAY_RECORDING_DIR"),
                "fallback_to_network": os.getenv("REPLAY_FALLBACK"),
                "enabled": os.getenv("REPLAY_ENABLED"),
            },
            **overrides,
        )


def load_config(path: Union[str, Path], **overrides: Any) -> ReplayConfig:
    """Load a ReplayConfig from a YAML file.

    The settings may sit at the top level or under a ``replay`` key.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Replay config {path} must be a mapping")

    section = data.get("replay", data)
    return ReplayConfig.from_mapping(section, **overrides)
