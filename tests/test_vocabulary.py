from __future__ import annotations

import dataclasses

import pytest

from layered_lexicon.config import LimitsConfig
from layered_lexicon.errors import ValidationError
from layered_lexicon.vocabulary import PartOfSpeech, VocabularyStore


def _add(store: VocabularyStore, words: list[str], commonality: int = 5) -> list[int]:
    count = len(words)
    return store.add_batch(words, [1] * count, [2] * count, [PartOfSpeech.NOUN] * count, [commonality] * count)


def test_ids_are_dense_and_stable() -> None:
    store = VocabularyStore()
    assert _add(store, ["knight", "sword"]) == [0, 1]
    assert _add(store, ["castle"]) == [2]
    assert store.token_id("sword") == 1
    assert store.word(2) == "castle"
    assert "knight" in store and 1 in store and 3 not in store
    assert len(store) == 3


def test_duplicate_batch_is_rejected_without_partial_effect() -> None:
    store = VocabularyStore()
    _add(store, ["knight"])
    with pytest.raises(ValidationError):
        _add(store, ["dragon", "knight"])
    with pytest.raises(ValidationError):
        _add(store, ["dragon", "dragon"])
    assert store.words() == ["knight"]


@pytest.mark.parametrize(
    "domains, sentiments, parts, commonality",
    [
        ([16], [0], [1], [0]),
        ([0], [5], [1], [0]),
        ([0], [0], [10], [0]),
        ([0], [0], [1], [11]),
        ([0, 1], [0], [1], [0]),
    ],
)
def test_out_of_range_metadata_is_rejected(domains, sentiments, parts, commonality) -> None:
    store = VocabularyStore()
    with pytest.raises(ValidationError):
        store.add_batch(["word"], domains, sentiments, parts, commonality)
    assert len(store) == 0


def test_capacity_is_a_hard_limit() -> None:
    store = VocabularyStore(LimitsConfig(max_vocab=2))
    _add(store, ["a", "b"])
    with pytest.raises(ValidationError):
        _add(store, ["c"])


def test_common_tokens_become_start_words() -> None:
    store = VocabularyStore()
    store.add_batch(["knight", "rare", "dragon"], [1, 1, 2], [3, 3, 1], [1, 1, 1], [9, 2, 7])
    assert store.domain_starts(1) == [0]
    assert store.domain_starts(2) == [2]
    assert store.sentiment_starts(3) == [0]
    assert store.sentiment_starts(1) == [2]
    assert store.domain_starts(5) == []


def test_metadata_is_immutable() -> None:
    store = VocabularyStore()
    _add(store, ["knight"])
    meta = store.metadata(0)
    assert meta.part_of_speech == PartOfSpeech.NOUN
    with pytest.raises(dataclasses.FrozenInstanceError):
        meta.commonality = 10  # type: ignore[misc]


def test_unknown_lookups_raise_validation_error() -> None:
    store = VocabularyStore()
    with pytest.raises(ValidationError):
        store.token_id("ghost")
    with pytest.raises(ValidationError):
        store.word(0)
