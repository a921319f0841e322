"""Top-level generation engine: gated entry points and the orchestrator."""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .attention import AttentionTable, PositionTable
from .config import EngineConfig
from .errors import ValidationError
from .events import EventLog
from .gate import OpenGate, PermissionGate, require_admin, require_generate, require_train
from .logging import get_logger
from .selection import SelectionEngine
from .templates import TemplateStore
from .transitions import TransitionTables
from .utils import (
    derive_seed,
    ensure_sentence_ending,
    fill_placeholders,
    join_tokens,
    load_yaml_or_json,
    save_json,
)
from .vocabulary import NO_TOKEN, VocabularyStore, check_range

LOGGER = get_logger(__name__)

FREE_MODE = "free"
TEMPLATE_MODE = "template"


@dataclass(frozen=True)
class GenerationRequest:
    """One generation call. Unset ``max_length``/``max_layers`` come from the engine config."""

    seed: int
    domain: int = 0
    sentiment: int = 0
    max_length: Optional[int] = None
    max_layers: Optional[int] = None
    use_template: bool = False


@dataclass
class GenerationResult:
    text: str
    tokens: List[int]
    mode: str
    template_id: Optional[int] = None
    stop_reason: str = ""
    layers: List[int] = field(default_factory=list)


class GenerationEngine:
    """Owns every table and exposes the gated read and write paths."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        gate: Optional[PermissionGate] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.gate: PermissionGate = gate or OpenGate()
        self.events = events or EventLog()
        limits = self.config.limits
        self.vocabulary = VocabularyStore(limits)
        self.transitions = TransitionTables(self.vocabulary, limits)
        self.attention = AttentionTable(self.vocabulary, limits)
        self.positions = PositionTable(self.vocabulary, limits)
        self.templates = TemplateStore(limits)
        self.selector = SelectionEngine(
            self.vocabulary, self.transitions, self.attention, self.positions, limits
        )

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def add_vocabulary(
        self,
        caller: Hashable,
        words: Sequence[str],
        domains: Sequence[int],
        sentiments: Sequence[int],
        parts_of_speech: Sequence[int],
        commonality: Sequence[int],
    ) -> List[int]:
        require_train(self.gate, caller)
        ids = self.vocabulary.add_batch(words, domains, sentiments, parts_of_speech, commonality)
        LOGGER.info("Added %d vocabulary tokens", len(ids))
        self.events.emit("vocabulary_added", ids[0] if ids else len(self.vocabulary), len(ids))
        return ids

    def set_positions(
        self,
        caller: Hashable,
        token: int,
        positions: Sequence[int],
        weights: Sequence[int],
    ) -> None:
        require_train(self.gate, caller)
        entries = self.positions.set(token, positions, weights)
        LOGGER.info("Set %d position weights for token %d", len(entries), token)
        self.events.emit("positions_set", token, len(entries))

    def set_unigram(
        self,
        caller: Hashable,
        layer: int,
        token: int,
        targets: Sequence[int],
        probabilities: Sequence[int],
    ) -> None:
        require_train(self.gate, caller)
        group = self.transitions.set_unigram(layer, token, targets, probabilities)
        LOGGER.info("Set %d unigram transitions for token %d on layer %d", len(group), token, layer)
        self.events.emit("unigram_set", (layer, token), len(group))

    def set_bigram(
        self,
        caller: Hashable,
        layer: int,
        first: int,
        second: int,
        targets: Sequence[int],
        probabilities: Sequence[int],
    ) -> None:
        require_train(self.gate, caller)
        group = self.transitions.set_bigram(layer, first, second, targets, probabilities)
        LOGGER.info(
            "Set %d bigram transitions for (%d, %d) on layer %d", len(group), first, second, layer
        )
        self.events.emit("bigram_set", (layer, first, second), len(group))

    def set_attention(
        self,
        caller: Hashable,
        token: int,
        context_tokens: Sequence[int],
        weights: Sequence[int],
    ) -> None:
        require_train(self.gate, caller)
        entries = self.attention.set(token, context_tokens, weights)
        LOGGER.info("Set %d attention weights for token %d", len(entries), token)
        self.events.emit("attention_set", token, len(entries))

    def add_template(
        self,
        caller: Hashable,
        text: str,
        domain: int,
        sentiment: int,
        slot_types: Sequence[int],
    ) -> int:
        require_train(self.gate, caller)
        template_id = self.templates.add(text, domain, sentiment, slot_types)
        LOGGER.info("Added template %d with %d slots", template_id, len(slot_types))
        self.events.emit("template_added", template_id, len(slot_types))
        return template_id

    def deactivate_template(self, caller: Hashable, template_id: int) -> None:
        require_admin(self.gate, caller)
        self.templates.deactivate(template_id)
        LOGGER.info("Deactivated template %d", template_id)
        self.events.emit("template_deactivated", template_id, 1)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def _resolve_request(self, request: GenerationRequest) -> GenerationRequest:
        defaults = self.config.generator
        return replace(
            request,
            max_length=defaults.default_max_length if request.max_length is None else request.max_length,
            max_layers=defaults.default_layers if request.max_layers is None else request.max_layers,
        )

    def _validate_request(self, request: GenerationRequest) -> None:
        limits = self.config.limits
        if isinstance(request.seed, bool) or not isinstance(request.seed, int) or request.seed < 0:
            raise ValidationError(f"seed must be a non-negative integer, got {request.seed!r}")
        check_range("domain", request.domain, limits.num_domains)
        check_range("sentiment", request.sentiment, limits.num_sentiments)
        for name, value, upper in (
            ("max_length", request.max_length, limits.max_length),
            ("max_layers", request.max_layers, limits.max_layers),
        ):
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= upper:
                raise ValidationError(f"{name} must be an integer in [1, {upper}], got {value!r}")

    def generate(self, caller: Hashable, request: GenerationRequest) -> GenerationResult:
        require_generate(self.gate, caller)
        request = self._resolve_request(request)
        self._validate_request(request)
        if request.use_template:
            result = self._generate_template(request)
        else:
            result = self._generate_free(request)
        LOGGER.info(
            "Generated %d tokens in %s mode (seed=%d, stop=%s)",
            len(result.tokens),
            result.mode,
            request.seed,
            result.stop_reason,
        )
        self.events.emit("text_generated", request.seed, len(result.tokens))
        return result

    def _generate_free(self, request: GenerationRequest) -> GenerationResult:
        terminators = set(self.config.generator.terminators)
        start = self.selector.start_token(request.seed, request.domain, request.sentiment)
        tokens = [start]
        layers = [-1]
        previous, current = NO_TOKEN, start
        stop_reason = "max_length"
        if self.vocabulary.word(start) in terminators:
            stop_reason = "terminator"
        else:
            for step in range(1, request.max_length):
                step_seed = derive_seed(request.seed, step, "step")
                # The context mirrors the emitted tokens and stays within max_length.
                selection = self.selector.next_token(
                    step_seed, previous, current, tokens, request.max_layers
                )
                if selection.token == NO_TOKEN:
                    stop_reason = "exhausted"
                    break
                if not selection.from_tables and not self.config.generator.continue_on_fallback:
                    stop_reason = "exhausted"
                    break
                tokens.append(selection.token)
                layers.append(selection.layer)
                previous, current = current, selection.token
                if self.vocabulary.word(selection.token) in terminators:
                    stop_reason = "terminator"
                    break
        words = [self.vocabulary.word(token) for token in tokens]
        text = join_tokens(words, self.config.generator.attach_punctuation)
        text = ensure_sentence_ending(text, self.config.generator.terminators)
        return GenerationResult(
            text=text, tokens=tokens, mode=FREE_MODE, stop_reason=stop_reason, layers=layers
        )

    def _generate_template(self, request: GenerationRequest) -> GenerationResult:
        template_id = self.templates.select(request.domain, request.seed)
        template = self.templates.get(template_id)
        tokens: List[int] = []
        for index, slot_type in enumerate(template.slot_types):
            slot_seed = derive_seed(request.seed, index, "slot")
            tokens.append(
                self.selector.slot_token(slot_seed, slot_type, request.domain, request.sentiment)
            )
        words = [self.vocabulary.word(token) for token in tokens]
        text = fill_placeholders(template.text, words)
        return GenerationResult(
            text=text,
            tokens=tokens,
            mode=TEMPLATE_MODE,
            template_id=template_id,
            stop_reason="filled",
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def stats(self) -> Dict[str, int]:
        return {
            "vocabulary": len(self.vocabulary),
            "transition_groups": len(self.transitions),
            "attention_tokens": len(self.attention),
            "position_tokens": len(self.positions),
            "templates": len(self.templates),
        }

    def snapshot(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "vocabulary": self.vocabulary.to_dict(),
            "transitions": self.transitions.to_dict(),
            "attention": self.attention.to_dict(),
            "positions": self.positions.to_dict(),
            "templates": self.templates.to_dict(),
        }

    @classmethod
    def from_snapshot(
        cls,
        payload: Dict[str, Any],
        gate: Optional[PermissionGate] = None,
        events: Optional[EventLog] = None,
    ) -> "GenerationEngine":
        engine = cls(EngineConfig.from_dict(payload.get("config", {})), gate=gate, events=events)
        limits = engine.config.limits
        vocabulary = payload.get("vocabulary") or {}
        if vocabulary:
            engine.vocabulary.add_batch(
                vocabulary["words"],
                vocabulary["domains"],
                vocabulary["sentiments"],
                vocabulary["parts_of_speech"],
                vocabulary["commonality"],
            )
        engine.transitions.load_dict(payload.get("transitions", {}))
        for item in payload.get("attention", []):
            engine.attention.set(item["token"], item["context_tokens"], item["weights"])
        for item in payload.get("positions", []):
            engine.positions.set(item["token"], item["positions"], item["weights"])
        engine.templates = TemplateStore.from_dict(payload.get("templates", []), limits)
        return engine

    def save(self, path: Path) -> Path:
        path = Path(path)
        save_json(path, self.snapshot())
        LOGGER.info("Persisted engine tables to %s", path)
        return path

    @classmethod
    def load(
        cls,
        path: Path,
        gate: Optional[PermissionGate] = None,
        events: Optional[EventLog] = None,
    ) -> "GenerationEngine":
        return cls.from_snapshot(load_yaml_or_json(Path(path)), gate=gate, events=events)
