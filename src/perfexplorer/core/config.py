"""Configuration loading and normalization.

Sample configs live under ``configs/``.  This module turns those YAML files
into typed objects that the CLI, the API and the session rely on.
Environment variables in YAML values are expanded before parsing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)


def _expand_env(text: str) -> str:
    """Expand ${VARS} inside YAML text."""
    return os.path.expandvars(text)


class LayoutConfig(BaseModel):
    width: int = Field(default=1200, gt=0)
    height: int = Field(default=600, gt=0)
    padding: float = Field(default=1.0, ge=0)


class ParserConfig(BaseModel):
    encoding: str = "utf-8"
    errors: str = "replace"


class SessionConfig(BaseModel):
    on_parse_error: Literal["clear", "keep"] = "clear"


class ApiConfig(BaseModel):
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class HotspotConfig(BaseModel):
    top_n: int = Field(default=10, gt=0)


class ExplorerConfig(BaseModel):
    layout: LayoutConfig = LayoutConfig()
    parser: ParserConfig = ParserConfig()
    session: SessionConfig = SessionConfig()
    api: ApiConfig = ApiConfig()
    hotspots: HotspotConfig = HotspotConfig()
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ExplorerConfig":
        return load_config(path)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load YAML and expand environment variables."""
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {p}")
    text = _expand_env(p.read_text(encoding="utf-8"))
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {p}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {p}")
    logger.debug("Loaded YAML: path=%s keys=%s", p, list(data.keys()))
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries (override wins)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def normalize_raw_config(raw: dict[str, Any]) -> dict[str, Any]:
    """Accept the flat ``logging.level`` shape next to ``log_level``."""
    normalized = {k: v for k, v in raw.items() if k != "logging"}
    logging_cfg = raw.get("logging") or {}
    if "log_level" not in normalized and isinstance(logging_cfg, dict) and "level" in logging_cfg:
        normalized["log_level"] = logging_cfg["level"]
    if isinstance(normalized.get("log_level"), str):
        normalized["log_level"] = normalized["log_level"].upper()
    return normalized


def load_config(path: Optional[str | Path] = None, overrides: Optional[dict[str, Any]] = None) -> ExplorerConfig:
    """Load ``path`` (or defaults when it is None) and apply ``overrides`` on top."""
    raw: dict[str, Any] = load_yaml(path) if path else {}
    if overrides:
        raw = deep_merge(raw, overrides)
    normalized = normalize_raw_config(raw)
    try:
        cfg = ExplorerConfig(**normalized)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path or '<defaults>'}: {exc}") from exc
    logger.debug("Config ready: source=%s log_level=%s", path or "<defaults>", cfg.log_level)
    return cfg
