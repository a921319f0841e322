from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from layered_lexicon.config import EngineConfig
from layered_lexicon.data import load_sample_corpus
from layered_lexicon.engine import GenerationEngine
from layered_lexicon.loaders import build_engine
from layered_lexicon.vocabulary import PartOfSpeech

TRAINER = "alice"


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def engine(config: EngineConfig) -> GenerationEngine:
    return GenerationEngine(config=config)


@pytest.fixture
def sample_engine() -> GenerationEngine:
    return build_engine(load_sample_corpus())


@pytest.fixture
def knight_engine(engine: GenerationEngine) -> GenerationEngine:
    """Vocabulary {0: knight, 1: sword, 2: "."} with knight -> sword on layer 0."""
    engine.add_vocabulary(
        TRAINER,
        ["knight", "sword", "."],
        [1, 1, 0],
        [0, 0, 0],
        [PartOfSpeech.NOUN, PartOfSpeech.NOUN, PartOfSpeech.PUNCTUATION],
        [9, 1, 1],
    )
    engine.set_unigram(TRAINER, 0, 0, [1], [1000])
    return engine
