"""Token selection: layered next-token search, start words and slot filling."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from itertools import islice
from typing import Callable, List, Optional

from .attention import AttentionTable, PositionTable, relevance, slot_bonus
from .config import LimitsConfig
from .errors import UnavailableError
from .logging import get_logger
from .transitions import TransitionGroup, TransitionTables, sample_transition
from .vocabulary import GENERAL_DOMAIN, NO_TOKEN, PartOfSpeech, TokenMetadata, VocabularyStore

LOGGER = get_logger(__name__)

COMMONALITY_WEIGHT = 100


@dataclass(frozen=True)
class Selection:
    token: int
    score: int
    layer: int
    source: str

    @property
    def from_tables(self) -> bool:
        return self.source in {"bigram", "unigram"}


class SelectionEngine:
    """Reads the committed tables and never mutates them."""

    def __init__(
        self,
        vocabulary: VocabularyStore,
        transitions: TransitionTables,
        attention: AttentionTable,
        positions: PositionTable,
        limits: Optional[LimitsConfig] = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.transitions = transitions
        self.attention = attention
        self.positions = positions
        self.limits = limits or vocabulary.limits

    # Free-form -------------------------------------------------------------------
    def _usable(self, group: TransitionGroup) -> bool:
        # A multi-entry group without probability mass can never be sampled.
        return len(group) == 1 or (len(group) > 1 and sum(entry.probability for entry in group) > 0)

    def next_token(
        self,
        seed: int,
        previous: int,
        current: int,
        context: Sequence[int],
        max_layers: int,
    ) -> Selection:
        """Return the highest-scoring candidate across layers.

        Bigram and unigram groups are both consulted in every layer. A
        candidate displaces the current best only with a strictly higher
        score, so ties stay with the earliest candidate found.
        """

        vocab_size = len(self.vocabulary)
        if vocab_size == 0:
            return Selection(token=NO_TOKEN, score=0, layer=-1, source="none")
        context_length = len(context)
        best = Selection(token=NO_TOKEN, score=0, layer=-1, source="none")
        for layer in range(min(max_layers, self.limits.max_layers)):
            sources: List[tuple[str, TransitionGroup]] = []
            if previous != NO_TOKEN:
                sources.append(("bigram", self.transitions.bigram(layer, previous, current)))
            sources.append(("unigram", self.transitions.unigram(layer, current)))
            for source, group in sources:
                if not self._usable(group):
                    continue
                candidate = sample_transition(group, seed, self.limits.scale)
                score = relevance(self.attention, self.positions, candidate, context, context_length, layer)
                if best.token == NO_TOKEN or score > best.score:
                    best = Selection(token=candidate, score=score, layer=layer, source=source)
        if best.token != NO_TOKEN:
            return best
        token = int(seed) % vocab_size
        LOGGER.debug("No transition candidate after token %d; uniform fallback to %d", current, token)
        return Selection(token=token, score=0, layer=-1, source="fallback")

    def start_token(self, seed: int, domain: int, sentiment: int) -> int:
        """Seeded opener from the domain list, then the sentiment list, then the vocabulary."""

        candidates = self.vocabulary.domain_starts(domain) or self.vocabulary.sentiment_starts(sentiment)
        if candidates:
            return candidates[int(seed) % len(candidates)]
        vocab_size = len(self.vocabulary)
        if vocab_size == 0:
            raise UnavailableError("vocabulary is empty; no start token available")
        LOGGER.debug("No start words for domain %d or sentiment %d", domain, sentiment)
        return int(seed) % vocab_size

    # Template slots --------------------------------------------------------------
    def _scan(self, predicate: Callable[[TokenMetadata], bool]) -> List[int]:
        matches: Iterator[int] = (
            token
            for token in range(len(self.vocabulary))
            if predicate(self.vocabulary.metadata(token))
        )
        return list(islice(matches, self.limits.candidate_ceiling))

    def slot_token(self, seed: int, slot_type: int, domain: int, sentiment: int) -> int:
        """Best vocabulary token for a typed slot.

        Candidates must match the part of speech, belong to ``domain`` or the
        general domain, and sit within the sentiment window. Without any match
        only the part of speech is required; without that either, the pick is
        a uniform draw over the whole vocabulary.
        """

        window = self.limits.sentiment_window

        def _pos_matches(meta: TokenMetadata) -> bool:
            return slot_type == PartOfSpeech.ANY or meta.part_of_speech == slot_type

        def _all_match(meta: TokenMetadata) -> bool:
            return (
                _pos_matches(meta)
                and meta.domain in (domain, GENERAL_DOMAIN)
                and abs(meta.sentiment - sentiment) <= window
            )

        candidates = self._scan(_all_match) or self._scan(_pos_matches)
        if not candidates:
            vocab_size = len(self.vocabulary)
            if vocab_size == 0:
                raise UnavailableError("vocabulary is empty; cannot fill template slot")
            LOGGER.debug("No candidates for slot type %d; uniform pick", slot_type)
            return int(seed) % vocab_size

        best_token = NO_TOKEN
        best_score = -1
        for token in candidates:
            score = self.vocabulary.metadata(token).commonality * COMMONALITY_WEIGHT
            score += slot_bonus(self.attention, self.positions, token)
            if score > best_score:
                best_token, best_score = token, score
        return best_token
