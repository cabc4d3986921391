"""Category classification for raw source category values.

Public API:
    - :data:`CATEGORY_RULES` ordered keyword rules (first match wins)
    - :func:`guess_category`
    - :func:`classify`
    - :func:`build_category_mapping`
    - :class:`CategoryMappingStore`

Resolution order for one raw value:

1. the value already names a canonical category (case-insensitive);
2. a saved user mapping for the exact raw value;
3. a keyword guess from :data:`CATEGORY_RULES`;
4. unresolved (``None``); callers decide on the default.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .logging_setup import get_logger
from .persistence import KeyValueStore, load_category_mappings, save_category_mappings
from .records import canonical_category

_logger = get_logger("spend_analytics.categorize")


@dataclass(frozen=True, slots=True)
class CategoryRule:
    keywords: tuple[str, ...]
    category: str

    def matches(self, lowered: str) -> bool:
        return any(k in lowered for k in self.keywords)


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        ("lab", "clinical", "test", "analyt", "scientific"),
        "Clinical, Lab and scientific services",
    ),
    CategoryRule(("equip", "machine", "reactor", "prod", "manufactur"), "Production Equipment"),
    CategoryRule(
        ("warehouse", "logistics", "distrib", "transport", "storage"),
        "External Warehouse and distribution",
    ),
    CategoryRule(
        ("consult", "professional", "advisory", "legal", "audit"), "Professional Services"
    ),
    CategoryRule(("office", "print", "stationery", "paper", "toner"), "Office and Print"),
    CategoryRule(
        ("misc", "other", "facility", "utilit", "general"), "Miscellaneous Indirect Costs"
    ),
)


def guess_category(value: str | None) -> str | None:
    """Return the first keyword-rule category matching ``value``, if any."""

    if not value:
        return None
    lowered = value.lower()
    for rule in CATEGORY_RULES:
        if rule.matches(lowered):
            return rule.category
    return None


def classify(value: str | None, saved: Mapping[str, str] | None = None) -> str | None:
    """Resolve a raw category value to a canonical category or ``None``."""

    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    direct = canonical_category(raw)
    if direct is not None:
        return direct
    if saved:
        hit = saved.get(raw)
        if hit is None and raw != value:
            hit = saved.get(value)
        if hit is not None and canonical_category(hit) is not None:
            return canonical_category(hit)
    return guess_category(raw)


def build_category_mapping(
    values: Iterable[str | None], saved: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Seed ``{raw value: category}`` for every distinct non-empty value.

    Values the classifier cannot resolve are left out; the caller supplies
    the default or asks the user.
    """

    mapping: dict[str, str] = {}
    for value in values:
        raw = (value or "").strip()
        if not raw or raw in mapping:
            continue
        resolved = classify(raw, saved)
        if resolved is not None:
            mapping[raw] = resolved
    return mapping


class CategoryMappingStore:
    """Persisted ``{raw value: category}`` user mapping.

    ``merge`` reads the saved mapping, overlays the new entries and writes
    the result back.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> dict[str, str]:
        return load_category_mappings(self._store)

    def merge(self, mapping: Mapping[str, str]) -> bool:
        valid = {
            k.strip(): canonical_category(v)
            for k, v in mapping.items()
            if k and k.strip() and canonical_category(v) is not None
        }
        if not valid:
            return True
        current = self.load()
        current.update(valid)  # type: ignore[arg-type]
        ok = save_category_mappings(self._store, current)
        if ok:
            _logger.info("Saved %d category mapping(s)", len(valid))
        return ok


__all__ = [
    "CategoryRule",
    "CATEGORY_RULES",
    "guess_category",
    "classify",
    "build_category_mapping",
    "CategoryMappingStore",
]
