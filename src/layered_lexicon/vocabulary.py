"""Append-only token store with per-token linguistic metadata."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

from .config import LimitsConfig
from .errors import ValidationError
from .logging import get_logger

LOGGER = get_logger(__name__)

NO_TOKEN = -1
GENERAL_DOMAIN = 0


class PartOfSpeech(IntEnum):
    """Coarse part-of-speech tags. ``ANY`` marks an untyped template slot."""

    ANY = 0
    NOUN = 1
    VERB = 2
    ADJECTIVE = 3
    ADVERB = 4
    PRONOUN = 5
    PREPOSITION = 6
    CONJUNCTION = 7
    DETERMINER = 8
    PUNCTUATION = 9


@dataclass(frozen=True)
class TokenMetadata:
    """Metadata fixed at insertion time. There is no update path."""

    domain: int
    sentiment: int
    part_of_speech: int
    commonality: int


def check_range(name: str, value: int, upper: int) -> int:
    """Return ``value`` if it is an integer in ``[0, upper)``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value < upper:
        raise ValidationError(f"{name}={value} outside [0, {upper})")
    return int(value)


class VocabularyStore:
    """Bidirectional word/id mapping with start-word indices.

    Identifiers are dense and handed out in insertion order; a stored word
    never changes its identifier.
    """

    def __init__(self, limits: Optional[LimitsConfig] = None) -> None:
        self.limits = limits or LimitsConfig()
        self._words: List[str] = []
        self._ids: Dict[str, int] = {}
        self._metadata: List[TokenMetadata] = []
        self._domain_starts: Dict[int, List[int]] = {}
        self._sentiment_starts: Dict[int, List[int]] = {}

    def __len__(self) -> int:
        return len(self._words)

    def __contains__(self, token: object) -> bool:
        if isinstance(token, str):
            return token in self._ids
        return isinstance(token, int) and not isinstance(token, bool) and 0 <= token < len(self._words)

    # Building --------------------------------------------------------------------
    def add_batch(
        self,
        words: Sequence[str],
        domains: Sequence[int],
        sentiments: Sequence[int],
        parts_of_speech: Sequence[int],
        commonality: Sequence[int],
    ) -> List[int]:
        """Validate the whole batch, then append it. Returns the new ids."""

        count = len(words)
        if not (len(domains) == len(sentiments) == len(parts_of_speech) == len(commonality) == count):
            raise ValidationError("vocabulary batch arrays must have equal lengths")
        if len(self._words) + count > self.limits.max_vocab:
            raise ValidationError(
                f"vocabulary capacity {self.limits.max_vocab} exceeded by batch of {count}"
            )
        seen: set[str] = set()
        pending: List[TokenMetadata] = []
        for index, word in enumerate(words):
            if not isinstance(word, str) or not word:
                raise ValidationError(f"word at index {index} must be a non-empty string")
            if word in self._ids or word in seen:
                raise ValidationError(f"duplicate word {word!r}")
            seen.add(word)
            pending.append(
                TokenMetadata(
                    domain=check_range("domain", domains[index], self.limits.num_domains),
                    sentiment=check_range("sentiment", sentiments[index], self.limits.num_sentiments),
                    part_of_speech=check_range("part_of_speech", parts_of_speech[index], len(PartOfSpeech)),
                    commonality=check_range("commonality", commonality[index], self.limits.max_commonality + 1),
                )
            )

        new_ids: List[int] = []
        for word, meta in zip(words, pending):
            token = len(self._words)
            self._words.append(word)
            self._ids[word] = token
            self._metadata.append(meta)
            if meta.commonality >= self.limits.start_commonality:
                self._domain_starts.setdefault(meta.domain, []).append(token)
                self._sentiment_starts.setdefault(meta.sentiment, []).append(token)
            new_ids.append(token)
        LOGGER.debug("Added %d tokens (vocabulary size %d)", count, len(self._words))
        return new_ids

    # Querying --------------------------------------------------------------------
    def validate_token(self, token: int, name: str = "token") -> int:
        return check_range(name, token, len(self._words))

    def token_id(self, word: str) -> int:
        try:
            return self._ids[word]
        except KeyError:
            raise ValidationError(f"unknown word {word!r}") from None

    def word(self, token: int) -> str:
        return self._words[self.validate_token(token)]

    def metadata(self, token: int) -> TokenMetadata:
        return self._metadata[self.validate_token(token)]

    def words(self) -> List[str]:
        return list(self._words)

    def domain_starts(self, domain: int) -> List[int]:
        return list(self._domain_starts.get(domain, []))

    def sentiment_starts(self, sentiment: int) -> List[int]:
        return list(self._sentiment_starts.get(sentiment, []))

    # Persistence -----------------------------------------------------------------
    def to_dict(self) -> dict[str, object]:
        return {
            "words": list(self._words),
            "domains": [meta.domain for meta in self._metadata],
            "sentiments": [meta.sentiment for meta in self._metadata],
            "parts_of_speech": [meta.part_of_speech for meta in self._metadata],
            "commonality": [meta.commonality for meta in self._metadata],
        }
