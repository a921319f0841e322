"""Append-only template store with domain and sentiment indices."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from .config import LimitsConfig
from .errors import UnavailableError, ValidationError
from .logging import get_logger
from .utils import placeholder_indices
from .vocabulary import GENERAL_DOMAIN, PartOfSpeech, check_range

LOGGER = get_logger(__name__)


def placeholder(index: int) -> str:
    """Return the literal marker for slot ``index``, e.g. ``{0}``."""
    return "{" + str(index) + "}"


@dataclass(frozen=True)
class Template:
    text: str
    domain: int
    sentiment: int
    slot_types: tuple[int, ...]
    active: bool = True

    @property
    def slot_count(self) -> int:
        return len(self.slot_types)


class TemplateStore:
    """Templates are never removed; deactivation keeps every id stable."""

    def __init__(self, limits: Optional[LimitsConfig] = None) -> None:
        self.limits = limits or LimitsConfig()
        self._templates: List[Template] = []
        self._by_domain: Dict[int, List[int]] = {}
        self._by_sentiment: Dict[int, List[int]] = {}

    def __len__(self) -> int:
        return len(self._templates)

    def add(self, text: str, domain: int, sentiment: int, slot_types: Sequence[int]) -> int:
        if len(self._templates) >= self.limits.max_templates:
            raise ValidationError(f"template capacity {self.limits.max_templates} reached")
        if not isinstance(text, str) or not text:
            raise ValidationError("template text must be a non-empty string")
        check_range("domain", domain, self.limits.num_domains)
        check_range("sentiment", sentiment, self.limits.num_sentiments)
        if len(slot_types) > self.limits.max_slots:
            raise ValidationError(f"{len(slot_types)} slots exceed the bound of {self.limits.max_slots}")
        for index, slot_type in enumerate(slot_types):
            check_range("slot_type", slot_type, len(PartOfSpeech))
            occurrences = text.count(placeholder(index))
            if occurrences != 1:
                raise ValidationError(
                    f"placeholder {placeholder(index)} must appear exactly once, found {occurrences}"
                )
        stray = sorted({index for index in placeholder_indices(text) if index >= len(slot_types)})
        if stray:
            raise ValidationError(
                f"placeholder {placeholder(stray[0])} has no slot; {len(slot_types)} slots declared"
            )
        template = Template(
            text=text,
            domain=domain,
            sentiment=sentiment,
            slot_types=tuple(int(slot) for slot in slot_types),
        )
        template_id = len(self._templates)
        self._templates.append(template)
        self._by_domain.setdefault(domain, []).append(template_id)
        self._by_sentiment.setdefault(sentiment, []).append(template_id)
        LOGGER.debug("Stored template %d with %d slots", template_id, template.slot_count)
        return template_id

    def deactivate(self, template_id: int) -> Template:
        check_range("template_id", template_id, len(self._templates))
        template = replace(self._templates[template_id], active=False)
        self._templates[template_id] = template
        return template

    def get(self, template_id: int) -> Template:
        return self._templates[check_range("template_id", template_id, len(self._templates))]

    def ids_for_domain(self, domain: int) -> List[int]:
        return list(self._by_domain.get(domain, []))

    def ids_for_sentiment(self, sentiment: int) -> List[int]:
        return list(self._by_sentiment.get(sentiment, []))

    def select(self, domain: int, seed: int) -> int:
        """Seeded pick among the domain's templates, probing past inactive ones."""

        candidates = self._by_domain.get(domain) or self._by_domain.get(GENERAL_DOMAIN) or []
        if not candidates:
            raise UnavailableError(f"no templates for domain {domain} or the general domain")
        count = len(candidates)
        for offset in range(count):
            template_id = candidates[(seed + offset) % count]
            if self._templates[template_id].active:
                return template_id
        raise UnavailableError(f"all {count} candidate templates are inactive")

    def to_dict(self) -> list[dict[str, object]]:
        return [
            {
                "text": template.text,
                "domain": template.domain,
                "sentiment": template.sentiment,
                "slot_types": list(template.slot_types),
                "active": template.active,
            }
            for template in self._templates
        ]

    @classmethod
    def from_dict(cls, payload: Sequence[dict[str, object]], limits: Optional[LimitsConfig] = None) -> "TemplateStore":
        store = cls(limits)
        for item in payload:
            template_id = store.add(
                item["text"],  # type: ignore[arg-type]
                item["domain"],  # type: ignore[arg-type]
                item["sentiment"],  # type: ignore[arg-type]
                item["slot_types"],  # type: ignore[arg-type]
            )
            if not item.get("active", True):
                store.deactivate(template_id)
        return store
