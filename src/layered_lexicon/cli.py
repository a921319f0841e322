"""Command line interface for Layered Lexicon."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import load_config
from .data import load_sample_corpus
from .engine import GenerationEngine, GenerationRequest
from .errors import EngineError
from .loaders import build_engine, load_corpus
from .logging import configure_logging, get_logger

LOGGER = get_logger(__name__)

CORPUS_OPTION = typer.Option(
    None,
    help="Corpus (YAML/JSON) or saved engine snapshot. Defaults to the bundled sample.",
)
CONFIG_OPTION = typer.Option(
    None,
    help="Path to engine configuration.",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level.")

app = typer.Typer(help="Deterministic layered text generation from integer-weighted tables.")


@app.callback()
def main(verbose: bool = VERBOSE_OPTION) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


def _load_engine(corpus_path: Optional[Path], config_path: Optional[Path]) -> GenerationEngine:
    config = load_config(config_path)
    payload: Dict[str, Any] = load_sample_corpus() if corpus_path is None else load_corpus(corpus_path)
    # Snapshots store the vocabulary as parallel arrays, corpora as a list of records.
    if isinstance(payload.get("vocabulary"), dict):
        if config_path is not None:
            payload = {**payload, "config": config.to_dict()}
        return GenerationEngine.from_snapshot(payload)
    return build_engine(payload, config=config)


@app.command()
def generate(
    seed: int = typer.Argument(..., help="Session seed; equal seeds give equal output."),
    domain: int = typer.Option(0, help="Requested domain id."),
    sentiment: int = typer.Option(0, help="Requested sentiment class."),
    max_length: Optional[int] = typer.Option(None, help="Maximum number of tokens."),
    layers: Optional[int] = typer.Option(None, help="Number of transition layers to consult."),
    template: bool = typer.Option(False, "--template", help="Fill a template instead of free-form generation."),
    corpus: Optional[Path] = CORPUS_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Generate one sentence."""

    try:
        engine = _load_engine(corpus, config_path)
        request = GenerationRequest(
            seed=seed,
            domain=domain,
            sentiment=sentiment,
            max_length=max_length,
            max_layers=layers,
            use_template=template,
        )
        result = engine.generate("cli", request)
    except EngineError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(result.text)


@app.command()
def inspect(
    corpus: Optional[Path] = CORPUS_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Print table sizes as JSON."""

    try:
        engine = _load_engine(corpus, config_path)
    except EngineError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(engine.stats(), indent=2))


@app.command()
def export(
    output: Path = typer.Argument(..., help="Destination JSON file."),
    corpus: Optional[Path] = CORPUS_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Build the engine from a corpus and write a snapshot of every table."""

    try:
        engine = _load_engine(corpus, config_path)
    except EngineError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    engine.save(output)
    typer.echo(f"Wrote snapshot with {len(engine.vocabulary)} tokens to {output}")


if __name__ == "__main__":
    app()
