"""Attention and positional relevance tables.

Both tables attach a short list of ``(key, weight)`` pairs to a token. The
weights are additive integers: the "attention" here is a weighted-sum
relevance heuristic, not a learned mechanism.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import LimitsConfig
from .errors import ValidationError
from .logging import get_logger
from .vocabulary import VocabularyStore, check_range

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class AttentionEntry:
    context_token: int
    weight: int


@dataclass(frozen=True)
class PositionEntry:
    position: int
    weight: int


class AttentionTable:
    """Per-token relevance weights towards specific context tokens."""

    def __init__(self, vocabulary: VocabularyStore, limits: Optional[LimitsConfig] = None) -> None:
        self.vocabulary = vocabulary
        self.limits = limits or vocabulary.limits
        self._entries: Dict[int, Tuple[AttentionEntry, ...]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, token: int, context_tokens: Sequence[int], weights: Sequence[int]) -> Tuple[AttentionEntry, ...]:
        self.vocabulary.validate_token(token)
        if len(context_tokens) != len(weights):
            raise ValidationError("context tokens and weights must have equal lengths")
        if len(context_tokens) > self.limits.max_attention:
            raise ValidationError(
                f"{len(context_tokens)} attention entries exceed the bound of {self.limits.max_attention}"
            )
        for context_token in context_tokens:
            self.vocabulary.validate_token(context_token, "context_token")
        for weight in weights:
            check_range("weight", weight, self.limits.max_weight + 1)
        entries = tuple(
            AttentionEntry(context_token=int(context), weight=int(weight))
            for context, weight in zip(context_tokens, weights)
        )
        self._entries[token] = entries
        LOGGER.debug("Attention for token %d now holds %d entries", token, len(entries))
        return entries

    def get(self, token: int) -> Tuple[AttentionEntry, ...]:
        return self._entries.get(token, ())

    def weight_towards(self, token: int, context: Sequence[int]) -> int:
        total = 0
        entries = self.get(token)
        for context_token in context:
            for entry in entries:
                if entry.context_token == context_token:
                    total += entry.weight
        return total

    def total_weight(self, token: int) -> int:
        return sum(entry.weight for entry in self.get(token))

    def to_dict(self) -> list[dict[str, object]]:
        return [
            {
                "token": token,
                "context_tokens": [entry.context_token for entry in entries],
                "weights": [entry.weight for entry in entries],
            }
            for token, entries in self._entries.items()
        ]


class PositionTable:
    """Per-token relevance weights tied to sequence positions."""

    def __init__(self, vocabulary: VocabularyStore, limits: Optional[LimitsConfig] = None) -> None:
        self.vocabulary = vocabulary
        self.limits = limits or vocabulary.limits
        self._entries: Dict[int, Tuple[PositionEntry, ...]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, token: int, positions: Sequence[int], weights: Sequence[int]) -> Tuple[PositionEntry, ...]:
        self.vocabulary.validate_token(token)
        if len(positions) != len(weights):
            raise ValidationError("positions and weights must have equal lengths")
        if len(positions) > self.limits.max_length:
            raise ValidationError(
                f"{len(positions)} position entries exceed the bound of {self.limits.max_length}"
            )
        for position in positions:
            check_range("position", position, self.limits.max_length)
        for weight in weights:
            check_range("weight", weight, self.limits.max_weight + 1)
        entries = tuple(
            PositionEntry(position=int(position), weight=int(weight))
            for position, weight in zip(positions, weights)
        )
        self._entries[token] = entries
        LOGGER.debug("Positions for token %d now hold %d entries", token, len(entries))
        return entries

    def get(self, token: int) -> Tuple[PositionEntry, ...]:
        return self._entries.get(token, ())

    def decayed_weight(self, token: int, context_length: int, layer: int) -> int:
        divisor = layer + 1
        return sum(entry.weight // divisor for entry in self.get(token) if entry.position < context_length)

    def half_weight(self, token: int) -> int:
        return sum(entry.weight // 2 for entry in self.get(token))

    def to_dict(self) -> list[dict[str, object]]:
        return [
            {
                "token": token,
                "positions": [entry.position for entry in entries],
                "weights": [entry.weight for entry in entries],
            }
            for token, entries in self._entries.items()
        ]


def relevance(
    attention: AttentionTable,
    positions: PositionTable,
    candidate: int,
    context: Sequence[int],
    context_length: int,
    layer: int,
) -> int:
    """Attention towards ``context[:context_length]`` plus layer-decayed positional weight."""

    window = context[:context_length]
    return attention.weight_towards(candidate, window) + positions.decayed_weight(
        candidate, context_length, layer
    )


def slot_bonus(attention: AttentionTable, positions: PositionTable, candidate: int) -> int:
    """Context-free bonus used when scoring template slot candidates."""

    return attention.total_weight(candidate) + positions.half_weight(candidate)
