"""Bundled data for the Layered Lexicon package."""

from __future__ import annotations

from importlib import resources
from typing import Any, Dict

import yaml


def load_sample_corpus() -> Dict[str, Any]:
    with resources.files(__package__).joinpath("sample_corpus.yaml").open("r", encoding="utf-8") as stream:
        return yaml.safe_load(stream)


__all__ = ["load_sample_corpus"]
