"""Reading and writing corpora, configs and engine snapshots.

Snapshots are always written as JSON. Corpora and configs may be YAML or JSON,
chosen by file suffix.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import yaml


def save_json(path: Path, data: Any, *, indent: int = 2) -> None:
    """Write ``data`` to ``path`` as UTF-8 JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        json.dump(data, stream, indent=indent, ensure_ascii=False)
        stream.write("\n")


def load_yaml_or_json(path: Path) -> Dict[str, Any]:
    """Load a mapping from YAML or JSON depending on the file suffix."""
    with path.open("r", encoding="utf-8") as stream:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(stream) or {}
        return json.load(stream)
