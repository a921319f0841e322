from __future__ import annotations

import logging
from pathlib import Path

import pytest

from layered_lexicon import (
    AuthorizationError,
    EngineConfig,
    GenerationEngine,
    GenerationRequest,
    LifecycleError,
    NotificationError,
    RoleGate,
    UnavailableError,
    ValidationError,
)
from layered_lexicon.config import GeneratorConfig
from layered_lexicon.data import load_sample_corpus
from layered_lexicon.events import EngineEvent
from layered_lexicon.loaders import build_engine
from layered_lexicon.vocabulary import PartOfSpeech

TRAINER = "alice"


def test_knight_example_appends_period(knight_engine: GenerationEngine) -> None:
    request = GenerationRequest(seed=12345, domain=1, sentiment=0, max_length=3, max_layers=1)
    result = knight_engine.generate(TRAINER, request)
    assert result.text == "knight sword."
    assert result.tokens == [0, 1]
    assert result.stop_reason == "exhausted"


def test_knight_example_stops_on_terminator(knight_engine: GenerationEngine) -> None:
    knight_engine.set_unigram(TRAINER, 0, 1, [2], [1000])
    for seed in (0, 1, 99, 2**63):
        request = GenerationRequest(seed=seed, domain=1, sentiment=0, max_length=3, max_layers=1)
        result = knight_engine.generate(TRAINER, request)
        assert result.text == "knight sword."
        assert result.tokens == [0, 1, 2]
        assert result.stop_reason == "terminator"


def test_max_length_cuts_the_sentence(knight_engine: GenerationEngine) -> None:
    knight_engine.set_unigram(TRAINER, 0, 1, [2], [1000])
    request = GenerationRequest(seed=4, domain=1, sentiment=0, max_length=1, max_layers=1)
    result = knight_engine.generate(TRAINER, request)
    assert result.tokens == [0]
    assert result.text == "knight."


def test_fallback_can_continue_the_sentence(config: EngineConfig) -> None:
    config = EngineConfig(limits=config.limits, generator=GeneratorConfig(continue_on_fallback=True))
    engine = GenerationEngine(config=config)
    engine.add_vocabulary(TRAINER, ["knight", "sword", "shield"], [1, 1, 1], [0, 0, 0], [1, 1, 1], [9, 1, 1])
    result = engine.generate(TRAINER, GenerationRequest(seed=8, domain=1, max_length=4, max_layers=1))
    assert len(result.tokens) == 4
    assert result.text.endswith(".")


@pytest.mark.parametrize("max_length", [1, 2, 5, 12])
def test_free_form_output_is_bounded_and_terminated(sample_engine: GenerationEngine, max_length: int) -> None:
    for seed in range(60):
        request = GenerationRequest(seed=seed, domain=1, sentiment=2, max_length=max_length, max_layers=2)
        result = sample_engine.generate(TRAINER, request)
        assert 1 <= len(result.tokens) <= max_length
        assert result.text.endswith((".", "!", "?"))
        assert result.mode == "free"


def test_generation_is_deterministic(sample_engine: GenerationEngine) -> None:
    other = build_engine(load_sample_corpus())
    for seed in (0, 3, 77, 2**40):
        request = GenerationRequest(seed=seed, domain=1, sentiment=2, max_length=8, max_layers=3)
        assert sample_engine.generate(TRAINER, request) == other.generate(TRAINER, request)


def test_template_generation_fills_every_slot(sample_engine: GenerationEngine) -> None:
    result = sample_engine.generate(
        TRAINER, GenerationRequest(seed=0, domain=1, sentiment=2, use_template=True)
    )
    assert result.text == "The knight fights the knight."
    assert result.template_id == 0
    assert result.mode == "template"

    result = sample_engine.generate(
        TRAINER, GenerationRequest(seed=1, domain=1, sentiment=2, use_template=True)
    )
    assert result.text == "A brave knight waits beyond the hills!"


def test_template_output_has_no_placeholders(sample_engine: GenerationEngine) -> None:
    for seed in range(30):
        for domain in (0, 1, 4):
            request = GenerationRequest(seed=seed, domain=domain, sentiment=seed % 5, use_template=True)
            result = sample_engine.generate(TRAINER, request)
            assert "{" not in result.text and "}" not in result.text
            template = sample_engine.templates.get(result.template_id)
            assert len(result.tokens) == template.slot_count


def test_template_with_undeclared_marker_is_rejected(knight_engine: GenerationEngine) -> None:
    with pytest.raises(ValidationError):
        knight_engine.add_template(TRAINER, "The {0} meets {1}.", 1, 0, [PartOfSpeech.NOUN])
    assert len(knight_engine.templates) == 0
    assert "template_added" not in knight_engine.events.names()
    knight_engine.add_template(TRAINER, "The {0} meets {1}.", 1, 0, [PartOfSpeech.NOUN] * 2)
    result = knight_engine.generate(TRAINER, GenerationRequest(seed=0, domain=1, use_template=True))
    assert "{" not in result.text


def test_template_mode_without_templates_is_unavailable(knight_engine: GenerationEngine) -> None:
    with pytest.raises(UnavailableError):
        knight_engine.generate(TRAINER, GenerationRequest(seed=0, use_template=True))
    assert "text_generated" not in knight_engine.events.names()


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {"seed": -1},
        {"seed": 0, "domain": 16},
        {"seed": 0, "sentiment": 5},
        {"seed": 0, "max_length": 0},
        {"seed": 0, "max_length": 33},
        {"seed": 0, "max_layers": 0},
        {"seed": 0, "max_layers": 5},
    ],
)
def test_invalid_requests_are_rejected(knight_engine: GenerationEngine, request_kwargs) -> None:
    with pytest.raises(ValidationError):
        knight_engine.generate(TRAINER, GenerationRequest(**request_kwargs))


@pytest.fixture
def gated() -> tuple[GenerationEngine, RoleGate]:
    gate = RoleGate({TRAINER: ["trainer", "generator"], "root": ["admin"], "reader": ["generator"]})
    engine = GenerationEngine(gate=gate)
    engine.add_vocabulary(TRAINER, ["knight", "sword"], [1, 1], [0, 0], [1, 1], [9, 2])
    engine.add_template(TRAINER, "The {0}.", 1, 0, [1])
    return engine, gate


def test_paused_generation_fails_without_notification(gated) -> None:
    engine, gate = gated
    gate.pause()
    with pytest.raises(LifecycleError):
        engine.generate(TRAINER, GenerationRequest(seed=1, domain=1))
    with pytest.raises(LifecycleError):
        engine.set_unigram(TRAINER, 0, 0, [1], [1000])
    assert "text_generated" not in engine.events.names()
    assert "unigram_set" not in engine.events.names()
    gate.resume()
    assert engine.generate(TRAINER, GenerationRequest(seed=1, domain=1)).text == "knight."


def test_administration_ignores_pause(gated) -> None:
    engine, gate = gated
    gate.pause()
    engine.deactivate_template("root", 0)
    assert engine.templates.get(0).active is False


def test_roles_are_enforced(gated) -> None:
    engine, _ = gated
    with pytest.raises(AuthorizationError):
        engine.generate("mallory", GenerationRequest(seed=1))
    with pytest.raises(AuthorizationError):
        engine.set_attention("reader", 0, [1], [3])
    with pytest.raises(AuthorizationError):
        engine.deactivate_template(TRAINER, 0)
    assert engine.attention.get(0) == ()
    engine.generate("reader", GenerationRequest(seed=1, domain=1))


def test_mutations_emit_events(knight_engine: GenerationEngine) -> None:
    received: list[EngineEvent] = []
    knight_engine.events.subscribe(received.append)
    knight_engine.set_positions(TRAINER, 1, [1, 2], [4, 4])
    knight_engine.generate(TRAINER, GenerationRequest(seed=5, domain=1, max_length=3, max_layers=1))
    history = knight_engine.events.history
    assert [event.name for event in history] == [
        "vocabulary_added",
        "unigram_set",
        "positions_set",
        "text_generated",
    ]
    assert history[0] == EngineEvent(name="vocabulary_added", key=0, count=3)
    assert history[1].key == (0, 0)
    assert history[3] == EngineEvent(name="text_generated", key=5, count=2)
    assert [event.name for event in received] == ["positions_set", "text_generated"]


def test_snapshot_round_trip_preserves_behaviour(sample_engine: GenerationEngine, tmp_path: Path) -> None:
    sample_engine.deactivate_template(TRAINER, 2)
    path = sample_engine.save(tmp_path / "engine.json")
    restored = GenerationEngine.load(path)
    assert restored.stats() == sample_engine.stats()
    assert restored.templates.get(2).active is False
    for seed in range(20):
        for use_template in (False, True):
            request = GenerationRequest(seed=seed, domain=1, sentiment=2, max_length=10, use_template=use_template)
            assert restored.generate(TRAINER, request).text == sample_engine.generate(TRAINER, request).text


def test_failing_listener_does_not_hide_the_committed_write(engine: GenerationEngine) -> None:
    received: list[EngineEvent] = []

    def broken(event: EngineEvent) -> None:
        raise RuntimeError("listener down")

    engine.events.subscribe(broken)
    engine.events.subscribe(received.append)
    with pytest.raises(NotificationError):
        engine.add_vocabulary(TRAINER, ["knight"], [1], [0], [1], [9])
    assert len(engine.vocabulary) == 1
    assert [event.name for event in received] == ["vocabulary_added"]
    assert engine.events.names() == ["vocabulary_added"]

    engine.events.unsubscribe(broken)
    with pytest.raises(ValidationError):
        engine.add_vocabulary(TRAINER, ["knight"], [1], [0], [1], [9])
    assert len(engine.vocabulary) == 1


def test_writes_log_at_debug_and_accepted_calls_at_info(
    engine: GenerationEngine, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG, logger="layered_lexicon"):
        engine.add_vocabulary(TRAINER, ["knight"], [1], [0], [1], [9])
    levels = {(record.name, record.levelno) for record in caplog.records}
    assert ("layered_lexicon.vocabulary", logging.DEBUG) in levels
    assert ("layered_lexicon.engine", logging.INFO) in levels


def test_request_limits_default_to_the_engine_config(config: EngineConfig) -> None:
    config = EngineConfig(limits=config.limits, generator=GeneratorConfig(default_max_length=1))
    engine = GenerationEngine(config=config)
    engine.add_vocabulary(TRAINER, ["knight", "sword"], [1, 1], [0, 0], [1, 1], [9, 1])
    engine.set_unigram(TRAINER, 0, 0, [1], [1000])
    assert engine.generate(TRAINER, GenerationRequest(seed=3, domain=1)).tokens == [0]
    assert engine.generate(TRAINER, GenerationRequest(seed=3, domain=1, max_length=2)).tokens == [0, 1]
