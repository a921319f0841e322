"""Configuration helpers for Layered Lexicon."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, cast

import yaml


@dataclass
class LimitsConfig:
    """Hard bounds enforced on every table write and generation request."""

    scale: int = 1000
    max_vocab: int = 4096
    max_transitions: int = 16
    max_layers: int = 4
    max_length: int = 32
    max_attention: int = 32
    max_templates: int = 256
    max_slots: int = 8
    candidate_ceiling: int = 100
    sentiment_window: int = 2
    num_domains: int = 16
    num_sentiments: int = 5
    max_commonality: int = 10
    start_commonality: int = 7
    max_weight: int = 1_000_000

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                msg = f"limits.{name} must be a non-negative integer, got {value!r}"
                raise ValueError(msg)
        if self.scale == 0 or self.max_layers == 0 or self.max_length == 0:
            raise ValueError("limits.scale, max_layers and max_length must be positive")
        if self.num_domains == 0 or self.num_sentiments == 0:
            raise ValueError("limits.num_domains and num_sentiments must be positive")


@dataclass
class GeneratorConfig:
    """Configuration for the generation orchestrator."""

    default_max_length: int = 12
    default_layers: int = 2
    terminators: tuple[str, ...] = (".", "!", "?")
    attach_punctuation: tuple[str, ...] = (".", "!", "?", ",", ";", ":")
    continue_on_fallback: bool = False

    def __post_init__(self) -> None:
        # YAML and JSON hand us lists.
        self.terminators = tuple(self.terminators)
        self.attach_punctuation = tuple(self.attach_punctuation)


@dataclass
class EngineConfig:
    """Top-level configuration for the generation engine."""

    limits: LimitsConfig = field(default_factory=LimitsConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        return cls(
            limits=LimitsConfig(**data.get("limits", {})),
            generator=GeneratorConfig(**data.get("generator", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        generator = payload["generator"]
        generator["terminators"] = list(generator["terminators"])
        generator["attach_punctuation"] = list(generator["attach_punctuation"])
        return payload

    def save(self, path: Path) -> None:
        """Write the configuration as YAML or JSON depending on the suffix."""

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf8") as handle:
            if path.suffix.lower() in {".yaml", ".yml"}:
                yaml.safe_dump(self.to_dict(), handle, sort_keys=False)
            else:
                json.dump(self.to_dict(), handle, indent=2)
                handle.write("\n")


def _load_yaml_or_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf8") as handle:
        text = handle.read()
    if path.suffix.lower() in {".yaml", ".yml"}:
        loaded = yaml.safe_load(text)
        if isinstance(loaded, Mapping):
            return cast(dict[str, Any], dict(loaded))
        if loaded is None:
            return {}
        msg = "Expected mapping at root of YAML configuration"
        raise TypeError(msg)
    loaded_json = json.loads(text)
    if isinstance(loaded_json, dict):
        return cast(dict[str, Any], loaded_json)
    msg = "Expected mapping at root of JSON configuration"
    raise TypeError(msg)


def _merge_dict(base: dict[str, Any], overrides: Iterable[dict[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for override in overrides:
        for key, value in override.items():
            existing = result.get(key)
            if isinstance(value, dict) and isinstance(existing, dict):
                nested = _merge_dict(cast(dict[str, Any], existing), [value])
                result[key] = nested
            else:
                result[key] = value
    return result


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Iterable[dict[str, Any]]] = None,
) -> EngineConfig:
    """Load configuration from disk and merge overrides."""

    overrides = list(overrides or [])
    if path is None:
        base: dict[str, Any] = {}
    else:
        base = _load_yaml_or_json(Path(path))

    merged = _merge_dict(base, overrides)
    return EngineConfig.from_dict(merged)
