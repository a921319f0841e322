"""Layered unigram and bigram transition tables."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .config import LimitsConfig
from .errors import ValidationError
from .logging import get_logger
from .vocabulary import NO_TOKEN, VocabularyStore, check_range

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class Transition:
    target: int
    probability: int
    layer: int


TransitionGroup = Tuple[Transition, ...]
UnigramKey = Tuple[int, int]
BigramKey = Tuple[int, int, int]


def normalise_probabilities(probabilities: Sequence[int], scale: int) -> list[int]:
    """Rescale ``probabilities`` so they sum to ``scale``.

    Each entry becomes ``entry * scale // total``. The units lost to
    truncation go to the entries with the largest remainders, earliest entry
    first. Groups that sum to zero or already to ``scale`` are returned as-is.
    """

    values = np.asarray(probabilities, dtype=np.int64)
    total = int(values.sum())
    if total <= 0 or total == scale:
        return [int(value) for value in values]
    scaled = values * scale
    truncated = scaled // total
    remainders = scaled % total
    missing = scale - int(truncated.sum())
    if missing:
        # Stable sort keeps earlier entries ahead on equal remainders.
        order = np.argsort(-remainders, kind="stable")
        truncated[order[:missing]] += 1
    return [int(value) for value in truncated]


def sample_transition(group: Sequence[Transition], seed: int, scale: int) -> int:
    """Pick a target from ``group`` by cumulative probability.

    Pure function of ``(group, seed)``: a single entry is returned without
    looking at the seed, otherwise ``seed % scale`` is located in the
    cumulative distribution and the last entry absorbs any shortfall.
    """

    if not group:
        return NO_TOKEN
    if len(group) == 1:
        return group[0].target
    threshold = int(seed) % scale
    cumulative = np.cumsum([entry.probability for entry in group], dtype=np.int64)
    index = int(np.searchsorted(cumulative, threshold, side="right"))
    if index >= len(group):
        return group[-1].target
    return group[index].target


class TransitionTables:
    """Per-layer transition groups keyed by a token or a token pair."""

    def __init__(self, vocabulary: VocabularyStore, limits: Optional[LimitsConfig] = None) -> None:
        self.vocabulary = vocabulary
        self.limits = limits or vocabulary.limits
        self._unigrams: Dict[UnigramKey, TransitionGroup] = {}
        self._bigrams: Dict[BigramKey, TransitionGroup] = {}

    # Writing ---------------------------------------------------------------------
    def _build_group(
        self,
        layer: int,
        targets: Sequence[int],
        probabilities: Sequence[int],
    ) -> TransitionGroup:
        check_range("layer", layer, self.limits.max_layers)
        if len(targets) != len(probabilities):
            raise ValidationError("targets and probabilities must have equal lengths")
        if len(targets) > self.limits.max_transitions:
            raise ValidationError(
                f"{len(targets)} transitions exceed the bound of {self.limits.max_transitions}"
            )
        for target in targets:
            self.vocabulary.validate_token(target, "target")
        for probability in probabilities:
            check_range("probability", probability, self.limits.max_weight + 1)
        normalised = normalise_probabilities(probabilities, self.limits.scale)
        return tuple(
            Transition(target=int(target), probability=probability, layer=layer)
            for target, probability in zip(targets, normalised)
        )

    def set_unigram(
        self,
        layer: int,
        token: int,
        targets: Sequence[int],
        probabilities: Sequence[int],
    ) -> TransitionGroup:
        """Replace the group for ``(layer, token)``."""

        self.vocabulary.validate_token(token)
        group = self._build_group(layer, targets, probabilities)
        self._unigrams[(layer, token)] = group
        LOGGER.debug("Unigram group (%d, %d) now holds %d transitions", layer, token, len(group))
        return group

    def set_bigram(
        self,
        layer: int,
        first: int,
        second: int,
        targets: Sequence[int],
        probabilities: Sequence[int],
    ) -> TransitionGroup:
        """Replace the group for ``(layer, first, second)``."""

        self.vocabulary.validate_token(first, "first")
        self.vocabulary.validate_token(second, "second")
        group = self._build_group(layer, targets, probabilities)
        self._bigrams[(layer, first, second)] = group
        LOGGER.debug(
            "Bigram group (%d, %d, %d) now holds %d transitions", layer, first, second, len(group)
        )
        return group

    # Reading ---------------------------------------------------------------------
    def unigram(self, layer: int, token: int) -> TransitionGroup:
        return self._unigrams.get((layer, token), ())

    def bigram(self, layer: int, first: int, second: int) -> TransitionGroup:
        return self._bigrams.get((layer, first, second), ())

    def __len__(self) -> int:
        return len(self._unigrams) + len(self._bigrams)

    # Persistence -----------------------------------------------------------------
    def to_dict(self) -> dict[str, list[dict[str, object]]]:
        def _entries(group: TransitionGroup) -> dict[str, list[int]]:
            return {
                "targets": [entry.target for entry in group],
                "probabilities": [entry.probability for entry in group],
            }

        return {
            "unigrams": [
                {"layer": layer, "token": token, **_entries(group)}
                for (layer, token), group in self._unigrams.items()
            ],
            "bigrams": [
                {"layer": layer, "first": first, "second": second, **_entries(group)}
                for (layer, first, second), group in self._bigrams.items()
            ],
        }

    def load_dict(self, payload: dict[str, list[dict[str, object]]]) -> None:
        for item in payload.get("unigrams", []):
            self.set_unigram(item["layer"], item["token"], item["targets"], item["probabilities"])  # type: ignore[arg-type]
        for item in payload.get("bigrams", []):
            self.set_bigram(
                item["layer"],  # type: ignore[arg-type]
                item["first"],  # type: ignore[arg-type]
                item["second"],  # type: ignore[arg-type]
                item["targets"],  # type: ignore[arg-type]
                item["probabilities"],  # type: ignore[arg-type]
            )
