"""Utility helpers shared across the Layered Lexicon package."""

from .io import load_yaml_or_json, save_json
from .random import derive_seed, deterministic_hash
from .text import ensure_sentence_ending, fill_placeholders, join_tokens, placeholder_indices

__all__ = [
    "derive_seed",
    "deterministic_hash",
    "ensure_sentence_ending",
    "fill_placeholders",
    "join_tokens",
    "load_yaml_or_json",
    "placeholder_indices",
    "save_json",
]
