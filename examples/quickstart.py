"""Minimal quickstart script for Layered Lexicon.

The script builds an engine from the bundled corpus, prints a handful of
free-form and template sentences, and shows how the permission gate blocks
generation while paused.
"""

from dataclasses import replace

from layered_lexicon import (
    GenerationRequest,
    LifecycleError,
    RoleGate,
    build_engine,
)
from layered_lexicon.data import load_sample_corpus
from layered_lexicon.logging import configure_logging

QUEST_DOMAIN = 1
NEUTRAL = 2


def run_generation_demo() -> None:
    """Print free-form and template sentences for a few seeds."""

    gate = RoleGate({"demo": ["trainer", "generator", "admin"]})
    engine = build_engine(load_sample_corpus(), gate=gate, caller="demo")
    print("Tables:", engine.stats())
    for seed in range(4):
        request = GenerationRequest(seed=seed, domain=QUEST_DOMAIN, sentiment=NEUTRAL, max_length=8)
        free = engine.generate("demo", request)
        filled = engine.generate("demo", replace(request, use_template=True))
        print(f"seed={seed}: {free.text!r} ({free.stop_reason}) | {filled.text!r}")

    gate.pause()
    try:
        engine.generate("demo", GenerationRequest(seed=0))
    except LifecycleError as exc:
        print("Paused:", exc)


if __name__ == "__main__":
    configure_logging()
    run_generation_demo()
