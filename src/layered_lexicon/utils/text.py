"""Text helpers used to stitch generated output together."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from ..errors import ValidationError

_PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")


def ensure_sentence_ending(text: str, endings: Sequence[str] = (".", "!", "?")) -> str:
    """Ensure the text ends with terminal punctuation for readability."""
    if not text:
        return text
    return text if text.endswith(tuple(endings)) else f"{text}."


def placeholder_indices(text: str) -> list[int]:
    """Return the slot index of every ``{i}`` marker in ``text``, in order."""
    return [int(match.group(1)) for match in _PLACEHOLDER_RE.finditer(text)]


def fill_placeholders(text: str, values: Sequence[str]) -> str:
    """Replace each ``{i}`` marker with ``values[i]`` in a single pass.

    Inserted values are never rescanned, so a word that happens to contain
    ``{1}`` stays literal. Every marker must have a value.
    """

    def _substitute(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(values):
            raise ValidationError(f"no value for placeholder {match.group(0)}")
        return values[index]

    return _PLACEHOLDER_RE.sub(_substitute, text)


def join_tokens(words: Iterable[str], attach: Sequence[str] = ()) -> str:
    """Join ``words`` with spaces, gluing any word in ``attach`` to its predecessor."""
    attached = set(attach)
    parts: list[str] = []
    for word in words:
        if parts and word in attached:
            parts[-1] = parts[-1] + word
        else:
            parts.append(word)
    return " ".join(parts)
