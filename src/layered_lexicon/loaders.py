"""Build an engine from a word-addressed corpus description."""

from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import EngineConfig
from .engine import GenerationEngine
from .errors import ValidationError
from .events import EventLog
from .gate import PermissionGate
from .logging import get_logger
from .utils import load_yaml_or_json
from .vocabulary import PartOfSpeech

LOGGER = get_logger(__name__)

LOADER_CALLER = "corpus-loader"


def parse_part_of_speech(value: Any) -> int:
    """Accept ``"noun"``, ``"NOUN"`` or the integer tag."""
    if isinstance(value, str):
        try:
            return int(PartOfSpeech[value.upper()])
        except KeyError:
            raise ValidationError(f"unknown part of speech {value!r}") from None
    return int(value)


def _weighted(engine: GenerationEngine, mapping: Mapping[Any, Any]) -> Tuple[List[int], List[int]]:
    tokens = [engine.vocabulary.token_id(str(word)) for word in mapping]
    weights = [int(weight) for weight in mapping.values()]
    return tokens, weights


def build_engine(
    corpus: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
    gate: Optional[PermissionGate] = None,
    events: Optional[EventLog] = None,
    caller: Hashable = LOADER_CALLER,
) -> GenerationEngine:
    """Create an engine and replay ``corpus`` through its training entry points."""

    engine = GenerationEngine(config=config, gate=gate, events=events)
    vocabulary: Sequence[Mapping[str, Any]] = corpus.get("vocabulary", [])
    if vocabulary:
        engine.add_vocabulary(
            caller,
            [str(item["word"]) for item in vocabulary],
            [int(item.get("domain", 0)) for item in vocabulary],
            [int(item.get("sentiment", 0)) for item in vocabulary],
            [parse_part_of_speech(item.get("pos", 0)) for item in vocabulary],
            [int(item.get("commonality", 0)) for item in vocabulary],
        )
    for item in corpus.get("unigrams", []):
        targets, probabilities = _weighted(engine, item.get("next", {}))
        engine.set_unigram(
            caller,
            int(item.get("layer", 0)),
            engine.vocabulary.token_id(str(item["token"])),
            targets,
            probabilities,
        )
    for item in corpus.get("bigrams", []):
        first, second = (engine.vocabulary.token_id(str(word)) for word in item["tokens"])
        targets, probabilities = _weighted(engine, item.get("next", {}))
        engine.set_bigram(caller, int(item.get("layer", 0)), first, second, targets, probabilities)
    for item in corpus.get("attention", []):
        context_tokens, weights = _weighted(engine, item.get("context", {}))
        engine.set_attention(caller, engine.vocabulary.token_id(str(item["token"])), context_tokens, weights)
    for item in corpus.get("positions", []):
        position_weights: Dict[Any, Any] = item.get("weights", {})
        engine.set_positions(
            caller,
            engine.vocabulary.token_id(str(item["token"])),
            [int(position) for position in position_weights],
            [int(weight) for weight in position_weights.values()],
        )
    for item in corpus.get("templates", []):
        engine.add_template(
            caller,
            str(item["text"]),
            int(item.get("domain", 0)),
            int(item.get("sentiment", 0)),
            [parse_part_of_speech(slot) for slot in item.get("slots", [])],
        )
    LOGGER.info("Built engine from corpus: %s", engine.stats())
    return engine


def load_corpus(path: Path) -> Dict[str, Any]:
    """Read a corpus mapping from YAML or JSON."""
    payload = load_yaml_or_json(Path(path))
    if not isinstance(payload, dict):
        msg = "Expected mapping at root of corpus file"
        raise TypeError(msg)
    return payload
